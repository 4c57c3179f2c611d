"""Plain-text renderings of score reports, portfolios and weight previews (one string per line)."""

from __future__ import annotations
from typing import List, Optional

from complexity.config import Rating
from complexity.types import (
    CategoryBreakdown,
    PortfolioScoreResult,
    PortfolioStats,
    ScoreReport,
    StepEffort,
    WeightImpactPreview,
)

RATING_LABELS = {
    "low": "LOW",
    "medium": "MEDIUM",
    "high": "HIGH",
    "very_high": "VERY HIGH",
}

PREVIEW_TOP_IMPACTS = 10


def format_rating(rating: Rating) -> str:
    return RATING_LABELS[rating]


def _format_score(raw: float, normalized: Optional[float]) -> str:
    if normalized is not None:
        return f"{raw:.1f} (normalized: {normalized:.1f}/100)"
    return f"{raw:.1f}"


def _signed(delta: float) -> str:
    return f"+{delta:.1f}" if delta >= 0 else f"{delta:.1f}"


def _format_breakdown(b: CategoryBreakdown) -> List[str]:
    return [
        f"  Location:       {b.location:.2f}",
        f"  Technique:      {b.technique:.2f}",
        f"  Equipment:      {b.packaging:.2f}",
        f"  Station Move:   {b.station_movement:.2f}",
        f"  Task Count:     {b.task_count:.2f}",
        f"  Signals:        {b.structural_signals:.2f}",
    ]


def format_score_report(report: ScoreReport) -> List[str]:
    s = report.signals
    f = report.features
    lines = [
        f"=== Complexity Score: {report.build_id} ===",
        "",
        f"Score: {_format_score(report.raw_score, report.normalized_score)}",
        f"Rating: {format_rating(report.rating)}",
        f"Hot/Cold Ratio: {report.hot_ratio * 100:.0f}% hot",
        "",
        "Category Breakdown:",
        *_format_breakdown(report.breakdown),
        "",
        "Structural Signals:",
        f"  Grouping bounces:    {s.grouping_bounces}",
        f"  Station bounces:     {s.station_bounces}",
        f"  Merge points:        {s.merge_point_count}",
        f"  Deep merges (3+):    {s.deep_merge_count}",
        f"  Entry points:        {s.parallel_entry_points}",
        f"  Short equip steps:   {s.short_equipment_steps}",
        f"  Back-to-back equip:  {s.back_to_back_equipment}",
        f"  Transfers:           {s.transfer_count}",
        f"  Station transitions: {s.station_transitions}",
        "",
        "Top Contributors:",
    ]
    for c in report.top_contributors:
        lines.append(f"  [{c.type}] {c.source}: +{c.contribution:.2f}")
    lines += [
        "",
        "Build Summary:",
        f"  Steps: {f.step_count}",
        f"  Hot side: {f.hot_side_step_count}",
        f"  Cold side: {f.cold_side_step_count}",
        f"  Expo: {f.expo_step_count}",
        f"  Vending: {f.vending_step_count}",
        f"  Unique stations: {', '.join(f.unique_stations)}",
        f"  Unique equipment: {', '.join(f.unique_equipment) or 'none'}",
        "",
        f"Calculated: {report.calculated_at.isoformat()}",
        f"Config version: {report.config_version}",
    ]
    return lines


def format_step_ledger(step_efforts: List[StepEffort]) -> List[str]:
    lines = [
        "=== Step Effort Ledger ===",
        "",
        f"{'Step ID':<20}{'Location':>10}{'Technique':>10}{'Equipment':>10}{'Action':>10}{'Total':>10}",
        "-" * 70,
    ]
    for e in step_efforts:
        lines.append(
            f"{e.step_id:<20}{e.location_score:>10.2f}{e.technique_score:>10.2f}"
            f"{e.equipment_score:>10.2f}{e.action_family_score:>10.2f}{e.total_effort:>10.2f}"
        )
    lines.append("-" * 70)
    total = sum(e.total_effort for e in step_efforts)
    lines.append(f"{'TOTAL':<20}{'':>40}{total:>10.2f}")
    return lines


def format_portfolio_stats(stats: PortfolioStats) -> List[str]:
    return [
        "Portfolio Statistics:",
        f"  Builds: {stats.build_count}",
        f"  Min: {stats.min:.1f}",
        f"  Max: {stats.max:.1f}",
        f"  Mean: {stats.mean:.1f}",
        f"  Std Dev: {stats.std_dev:.1f}",
        f"  P50 (median): {stats.p50:.1f}",
        f"  P75: {stats.p75:.1f}",
        f"  P95: {stats.p95:.1f}",
    ]


def format_portfolio_ranking(result: PortfolioScoreResult) -> List[str]:
    lines = ["=== Portfolio Complexity Ranking ===", ""]
    lines += format_portfolio_stats(result.stats)
    lines += [
        "",
        f"{'Rank':<6}{'Build ID':<30}{'Raw':>10}{'Normalized':>12}{'Rating':>12}",
        "-" * 70,
    ]
    for i, r in enumerate(result.ranking, start=1):
        lines.append(
            f"{'#' + str(i):<6}{r.build_id[:28]:<30}{r.raw_score:>10.1f}"
            f"{r.normalized_score:>12.1f}{format_rating(r.rating):>12}"
        )
    lines += ["", f"Calculated: {result.calculated_at.isoformat()}"]
    return lines


def format_score_summary(report: ScoreReport) -> str:
    """One line: ``id: score (RATING)``, normalized when available."""
    if report.normalized_score is not None:
        score = f"{report.normalized_score:.1f}/100"
    else:
        score = f"{report.raw_score:.1f} raw"
    return f"{report.build_id}: {score} ({format_rating(report.rating)})"


def format_migration(from_: Rating, to: Rating, count: int) -> str:
    return f"{from_}→{to}: {count}"


def format_weight_impact_preview(preview: WeightImpactPreview) -> List[str]:
    lines = [
        "=== Weight Impact Preview ===",
        "",
        "Summary:",
        f"  Builds analyzed: {len(preview.build_impacts)}",
        f"  Rating changes: {preview.rating_changed_count}",
        f"  Rank changes: {preview.rank_changed_count}",
        "",
    ]

    if preview.migrations:
        lines.append("Rating Migrations:")
        for m in preview.migrations:
            lines.append("  " + format_migration(m.from_, m.to, m.count))
            shown = ", ".join(m.build_ids[:3])
            lines.append(f"    [{shown}]" if len(m.build_ids) <= 3 else f"    [{shown}, ...]")
    else:
        lines.append("Rating Migrations: None")
    lines.append("")

    st = preview.stats
    lines += [
        "Portfolio Stats Comparison:",
        f"{'  Metric':<15}{'Baseline':>12}{'Preview':>12}{'Delta':>10}",
        "  " + "-" * 46,
    ]
    for label, before, after, delta in (
        ("  Mean", st.baseline.mean, st.preview.mean, st.delta.mean),
        ("  P50 (median)", st.baseline.p50, st.preview.p50, st.delta.p50),
        ("  P95", st.baseline.p95, st.preview.p95, st.delta.p95),
        ("  Std Dev", st.baseline.std_dev, st.preview.std_dev, st.delta.std_dev),
    ):
        lines.append(f"{label:<15}{before:>12.1f}{after:>12.1f}{_signed(delta):>10}")
    lines.append("")

    top = preview.build_impacts[:PREVIEW_TOP_IMPACTS]
    if top:
        lines += [
            "Top Impacted Builds:",
            f"{'  Build ID':<30}{'Before':>10}{'After':>10}{'Delta':>10}{'Rank Δ':>8}",
            "  " + "-" * 65,
        ]
        for b in top:
            marker = " *" if b.delta.rating_changed else ""
            shift = b.delta.rank_shift
            rank = f"+{shift}" if shift > 0 else (str(shift) if shift < 0 else "-")
            lines.append(
                f"  {b.build_id[:28]:<28}{marker}{b.baseline.raw_score:>10.1f}"
                f"{b.preview.raw_score:>10.1f}{_signed(b.delta.raw_score):>10}{rank:>8}"
            )
        remaining = len(preview.build_impacts) - PREVIEW_TOP_IMPACTS
        if remaining > 0:
            lines.append(f"  ... and {remaining} more")
        lines += ["", "  * = rating changed"]

    lines += ["", f"Calculated: {preview.calculated_at.isoformat()}"]
    return lines


def format_preview_summary(preview: WeightImpactPreview) -> str:
    parts = [f"{len(preview.build_impacts)} builds"]
    if preview.rating_changed_count > 0:
        parts.append(f"{preview.rating_changed_count} rating changes")
    mean = preview.stats.delta.mean
    if abs(mean) >= 0.1:
        parts.append(f"mean {'+' if mean >= 0 else ''}{mean:.1f}")
    return ", ".join(parts)
