"""Portfolio normalization: stats over a build set, normalized scores and percentile ratings."""

from __future__ import annotations
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import numpy as np

from schema.models import Build
from kitchen_config.pods import SiteAssigner
from complexity.config import DEFAULT_COMPLEXITY_CONFIG, ComplexityConfig, Rating
from complexity.scoring import round_half_up, score_build, score_build_batch
from complexity.types import PortfolioScoreResult, PortfolioStats, RankingEntry, ScoreReport


def compute_portfolio_stats(reports: Sequence[ScoreReport]) -> PortfolioStats:
    """
    Summary statistics of raw scores.

    Rules:
      - empty portfolio -> all zeros
      - percentiles interpolate linearly between closest ranks
      - std_dev is the population standard deviation
      - every value is rounded to 2 decimals
    """
    if not reports:
        return PortfolioStats()

    scores = np.sort(np.array([r.raw_score for r in reports], dtype=float))
    p50, p75, p95 = np.percentile(scores, [50, 75, 95])
    return PortfolioStats(
        build_count=len(scores),
        min=round_half_up(float(scores[0])),
        max=round_half_up(float(scores[-1])),
        p50=round_half_up(float(p50)),
        p75=round_half_up(float(p75)),
        p95=round_half_up(float(p95)),
        mean=round_half_up(float(scores.mean())),
        std_dev=round_half_up(float(scores.std())),
    )


def normalize_score(raw_score: float, stats: PortfolioStats) -> float:
    """raw / p95 * 100, capped at 100 and rounded to 1 decimal; 0 when p95 is 0."""
    if stats.p95 == 0:
        return 0.0
    return round_half_up(min(raw_score / stats.p95 * 100, 100.0), 1)


def normalize_reports(reports: Sequence[ScoreReport], stats: PortfolioStats) -> List[ScoreReport]:
    return [
        r.model_copy(update={"normalized_score": normalize_score(r.raw_score, stats)})
        for r in reports
    ]


def compute_percentile_rating(score: float, all_scores: Sequence[float]) -> Rating:
    if not all_scores:
        return "medium"
    below = sum(1 for s in all_scores if s < score)
    equal = sum(1 for s in all_scores if s == score)
    rank = (below + equal / 2) / len(all_scores) * 100
    if rank < 25:
        return "low"
    if rank < 50:
        return "medium"
    if rank < 75:
        return "high"
    return "very_high"


def apply_percentile_ratings(reports: Sequence[ScoreReport]) -> List[ScoreReport]:
    """Replace fixed-threshold ratings with quartile ratings within this set."""
    all_scores = [r.raw_score for r in reports]
    return [
        r.model_copy(update={"rating": compute_percentile_rating(r.raw_score, all_scores)})
        for r in reports
    ]


def score_portfolio(
    builds: Sequence[Build],
    config: Optional[ComplexityConfig] = None,
    site_assigner: Optional[SiteAssigner] = None,
) -> PortfolioScoreResult:
    cfg = config or DEFAULT_COMPLEXITY_CONFIG
    raw_reports = score_build_batch(builds, cfg, site_assigner=site_assigner)
    stats = compute_portfolio_stats(raw_reports)
    reports = normalize_reports(raw_reports, stats)

    ranking = sorted(
        (
            RankingEntry(
                build_id=r.build_id,
                raw_score=r.raw_score,
                normalized_score=r.normalized_score,
                rating=r.rating,
            )
            for r in reports
        ),
        key=lambda e: -e.raw_score,
    )
    return PortfolioScoreResult(
        reports=reports,
        stats=stats,
        ranking=ranking,
        calculated_at=datetime.now(timezone.utc),
    )


def score_build_normalized(
    build: Build,
    all_builds: Sequence[Build],
    config: Optional[ComplexityConfig] = None,
    site_assigner: Optional[SiteAssigner] = None,
) -> ScoreReport:
    """Score one build, normalized against the p95 of ``all_builds``."""
    cfg = config or DEFAULT_COMPLEXITY_CONFIG
    stats = compute_portfolio_stats(score_build_batch(all_builds, cfg, site_assigner=site_assigner))
    report = score_build(build, cfg, site_assigner=site_assigner)
    return report.model_copy(update={"normalized_score": normalize_score(report.raw_score, stats)})
