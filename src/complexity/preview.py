"""Weight-impact preview: the same build set scored under a baseline and a proposed config."""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from schema.models import Build
from kitchen_config.pods import SiteAssigner
from complexity.config import DEFAULT_COMPLEXITY_CONFIG, ComplexityConfig
from complexity.portfolio import compute_percentile_rating, compute_portfolio_stats
from complexity.scoring import round_half_up, score_build_batch
from complexity.types import (
    BaselineCache,
    BuildImpact,
    ImpactDelta,
    PortfolioStats,
    RankEntry,
    RatingMigration,
    ScoreReport,
    ScoreSnapshot,
    StatsComparison,
    StatsDelta,
    WeightImpactPreview,
)


def compute_ranking(reports: Sequence[ScoreReport]) -> List[RankEntry]:
    """1-based ranks by raw score, highest first; ties keep input order."""
    ordered = sorted(reports, key=lambda r: -r.raw_score)
    return [RankEntry(build_id=r.build_id, rank=i + 1) for i, r in enumerate(ordered)]


def compute_migrations(
    baseline_reports: Sequence[ScoreReport],
    preview_reports: Sequence[ScoreReport],
) -> List[RatingMigration]:
    """Builds whose percentile rating differs between the two portfolios, grouped by (from, to)."""
    baseline_scores = [r.raw_score for r in baseline_reports]
    preview_scores = [r.raw_score for r in preview_reports]
    preview_by_id = {r.build_id: r for r in preview_reports}

    moved: Dict[tuple, List[str]] = {}
    for base in baseline_reports:
        prev = preview_by_id.get(base.build_id)
        if prev is None:
            continue
        before = compute_percentile_rating(base.raw_score, baseline_scores)
        after = compute_percentile_rating(prev.raw_score, preview_scores)
        if before != after:
            moved.setdefault((before, after), []).append(base.build_id)

    migrations = [
        RatingMigration(from_=before, to=after, count=len(ids), build_ids=ids)
        for (before, after), ids in moved.items()
    ]
    return sorted(migrations, key=lambda m: -m.count)


def compute_stats_comparison(baseline: PortfolioStats, preview: PortfolioStats) -> StatsComparison:
    return StatsComparison(
        baseline=baseline,
        preview=preview,
        delta=StatsDelta(
            mean=round_half_up(preview.mean - baseline.mean),
            p50=round_half_up(preview.p50 - baseline.p50),
            p95=round_half_up(preview.p95 - baseline.p95),
            std_dev=round_half_up(preview.std_dev - baseline.std_dev),
        ),
    )


def compute_build_impacts(
    baseline_reports: Sequence[ScoreReport],
    preview_reports: Sequence[ScoreReport],
    baseline_ranking: Sequence[RankEntry],
    preview_ranking: Sequence[RankEntry],
) -> List[BuildImpact]:
    baseline_scores = [r.raw_score for r in baseline_reports]
    preview_scores = [r.raw_score for r in preview_reports]
    preview_by_id = {r.build_id: r for r in preview_reports}
    baseline_rank = {e.build_id: e.rank for e in baseline_ranking}
    preview_rank = {e.build_id: e.rank for e in preview_ranking}

    impacts: List[BuildImpact] = []
    for base in baseline_reports:
        prev = preview_by_id.get(base.build_id)
        if prev is None:
            continue
        before_rank = baseline_rank.get(base.build_id, 0)
        after_rank = preview_rank.get(base.build_id, 0)
        before = compute_percentile_rating(base.raw_score, baseline_scores)
        after = compute_percentile_rating(prev.raw_score, preview_scores)
        impacts.append(
            BuildImpact(
                build_id=base.build_id,
                baseline=ScoreSnapshot(raw_score=base.raw_score, rating=before, rank=before_rank),
                preview=ScoreSnapshot(raw_score=prev.raw_score, rating=after, rank=after_rank),
                delta=ImpactDelta(
                    raw_score=round_half_up(prev.raw_score - base.raw_score),
                    rating_changed=before != after,
                    rank_shift=before_rank - after_rank,
                ),
            )
        )
    return sorted(impacts, key=lambda b: -abs(b.delta.raw_score))


def _assemble_preview(
    baseline: BaselineCache, preview_reports: List[ScoreReport]
) -> WeightImpactPreview:
    impacts = compute_build_impacts(
        baseline.reports, preview_reports, baseline.ranking, compute_ranking(preview_reports)
    )
    return WeightImpactPreview(
        build_impacts=impacts,
        migrations=compute_migrations(baseline.reports, preview_reports),
        stats=compute_stats_comparison(baseline.stats, compute_portfolio_stats(preview_reports)),
        rating_changed_count=sum(1 for b in impacts if b.delta.rating_changed),
        rank_changed_count=sum(1 for b in impacts if b.delta.rank_shift != 0),
        calculated_at=datetime.now(timezone.utc),
    )


def prepare_baseline_cache(
    builds: Sequence[Build],
    config: Optional[ComplexityConfig] = None,
    site_assigner: Optional[SiteAssigner] = None,
) -> BaselineCache:
    cfg = config or DEFAULT_COMPLEXITY_CONFIG
    reports = score_build_batch(builds, cfg, site_assigner=site_assigner)
    return BaselineCache(
        reports=reports,
        stats=compute_portfolio_stats(reports),
        ranking=compute_ranking(reports),
    )


def compute_weight_impact_preview(
    builds: Sequence[Build],
    preview_config: ComplexityConfig,
    baseline_config: Optional[ComplexityConfig] = None,
    site_assigner: Optional[SiteAssigner] = None,
) -> WeightImpactPreview:
    """
    Compare a proposed config against the baseline over ``builds``.

    Ratings in the preview are percentile ratings within each portfolio, so a
    build can migrate tiers even when its own raw score does not move.
    """
    baseline = prepare_baseline_cache(builds, baseline_config, site_assigner)
    preview_reports = score_build_batch(builds, preview_config, site_assigner=site_assigner)
    return _assemble_preview(baseline, preview_reports)


def compute_weight_impact_preview_with_cache(
    builds: Sequence[Build],
    preview_config: ComplexityConfig,
    cached_baseline: BaselineCache,
    site_assigner: Optional[SiteAssigner] = None,
) -> WeightImpactPreview:
    """Same as compute_weight_impact_preview, reusing a baseline from prepare_baseline_cache."""
    preview_reports = score_build_batch(builds, preview_config, site_assigner=site_assigner)
    return _assemble_preview(cached_baseline, preview_reports)
