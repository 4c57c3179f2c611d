"""Per-step effort and whole-build complexity scores."""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Iterable, List, Optional
import logging
import math

from schema.models import Build
from schema.derived import DerivedTransferStep
from kitchen_config.pods import SiteAssigner
from transfers.cache import get_derived_transfers_sync
from complexity.config import (
    DEFAULT_COMPLEXITY_CONFIG,
    ComplexityConfig,
    get_action_family_weight,
    get_complexity_rating,
    get_equipment_weight,
    get_location_weight,
    get_signal_weight,
    get_technique_weight,
)
from complexity.features import compute_hot_cold_ratio, extract_build_features
from complexity.signals import extract_structural_signals, score_structural_signals
from complexity.types import (
    BuildFeatures,
    CategoryBreakdown,
    ScoreReport,
    StepEffort,
    StepFeatures,
    StructuralSignals,
    TopContributor,
)

logger = logging.getLogger(__name__)

TOP_CONTRIBUTOR_LIMIT = 5

# Signals surfaced as top contributors: (signal name, contributor source, label)
_CONTRIBUTING_SIGNALS = (
    ("groupingBounces", "groupingBounces", "grouping bounce(s)"),
    ("stationBounces", "stationBounces", "station bounce(s)"),
    ("mergePointCount", "mergePoints", "merge point(s)"),
    ("deepMergeCount", "deepMerges", "deep merge(s)"),
    ("transferCount", "transfers", "transfer(s)"),
)


def round_half_up(value: float, digits: int = 2) -> float:
    """Round with ties away from zero on the positive side (0.125 -> 0.13)."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def score_step(features: StepFeatures, config: ComplexityConfig) -> StepEffort:
    """
    Effort for one step: location + technique + equipment + action family weights.

    The explanation lists each component that applies, then the total.
    """
    location = get_location_weight(config, features.station_side)
    technique = get_technique_weight(config, features.technique_id)
    equipment = get_equipment_weight(config, features.equipment_id)
    family = get_action_family_weight(config, features.action_family)

    explanation = [f"location({features.station_side}): {location:.2f}"]
    if features.technique_id:
        explanation.append(f"technique({features.technique_id}): {technique:.2f}")
    if features.equipment_id:
        explanation.append(f"equipment({features.equipment_id}): {equipment:.2f}")
    explanation.append(f"actionFamily({features.action_family}): {family:.2f}")

    total = location + technique + equipment + family
    explanation.append(f"total: {total:.2f}")

    return StepEffort(
        step_id=features.step_id,
        location_score=location,
        technique_score=technique,
        equipment_score=equipment,
        action_family_score=family,
        total_effort=total,
        explanation=explanation,
    )


def compute_category_breakdown(
    step_efforts: List[StepEffort],
    signals: StructuralSignals,
    features: BuildFeatures,
    config: ComplexityConfig,
) -> CategoryBreakdown:
    multipliers = config.category_multipliers
    # Equipment effort is reported under packaging; `equipment` mirrors it
    packaging = sum(e.equipment_score for e in step_efforts) * multipliers.packaging
    return CategoryBreakdown(
        location=sum(e.location_score for e in step_efforts) * multipliers.location,
        technique=sum(e.technique_score for e in step_efforts) * multipliers.technique,
        equipment=packaging,
        packaging=packaging,
        station_movement=signals.station_transitions * multipliers.station_movement,
        task_count=features.step_count * multipliers.task_count,
        structural_signals=score_structural_signals(signals, config),
    )


def raw_score_from_breakdown(breakdown: CategoryBreakdown) -> float:
    return (
        breakdown.location
        + breakdown.technique
        + breakdown.packaging
        + breakdown.station_movement
        + breakdown.task_count
        + breakdown.structural_signals
    )


def find_top_contributors(
    step_efforts: List[StepEffort],
    signals: StructuralSignals,
    config: ComplexityConfig,
    limit: int = TOP_CONTRIBUTOR_LIMIT,
) -> List[TopContributor]:
    contributors = [
        TopContributor(
            source=e.step_id,
            type="step",
            contribution=e.total_effort,
            explanation=", ".join(e.explanation),
        )
        for e in step_efforts
    ]

    counts = signals.counts()
    for name, source, label in _CONTRIBUTING_SIGNALS:
        count = counts[name]
        if count <= 0:
            continue
        weight = get_signal_weight(config, name)
        contributors.append(
            TopContributor(
                source=source,
                type="signal",
                contribution=count * weight,
                explanation=f"{count} {label} x {weight:g}",
            )
        )

    # sorted() is stable: equal contributions keep steps ahead of signals
    contributors = sorted(contributors, key=lambda c: -c.contribution)
    return contributors[:limit]


def score_build(
    build: Build,
    config: Optional[ComplexityConfig] = None,
    transfers: Optional[List[DerivedTransferStep]] = None,
    site_assigner: Optional[SiteAssigner] = None,
) -> ScoreReport:
    """
    Score one build with fixed-threshold rating.

    Rules:
      - raw score is the sum of the six category totals; rating uses the unrounded raw
      - transfers are derived from the build when not supplied
      - normalized_score stays None until portfolio scoring fills it in

    Returns:
        ScoreReport with raw_score and hot_ratio rounded to 2 decimals.
    """
    cfg = config or DEFAULT_COMPLEXITY_CONFIG
    if transfers is None:
        transfers = get_derived_transfers_sync(build, site_assigner)

    features = extract_build_features(build)
    signals = extract_structural_signals(build, cfg, transfers)
    step_efforts = [score_step(sf, cfg) for sf in features.step_features]
    breakdown = compute_category_breakdown(step_efforts, signals, features, cfg)
    raw = raw_score_from_breakdown(breakdown)

    logger.debug("scored %s: raw=%.2f (%d steps)", build.id, raw, features.step_count)
    return ScoreReport(
        build_id=build.id,
        raw_score=round_half_up(raw),
        normalized_score=None,
        rating=get_complexity_rating(cfg, raw),
        hot_ratio=round_half_up(compute_hot_cold_ratio(features)),
        breakdown=breakdown,
        top_contributors=find_top_contributors(step_efforts, signals, cfg),
        signals=signals,
        features=features,
        step_efforts=step_efforts,
        calculated_at=datetime.now(timezone.utc),
        config_version=cfg.version,
    )


def score_build_batch(
    builds: Iterable[Build],
    config: Optional[ComplexityConfig] = None,
    site_assigner: Optional[SiteAssigner] = None,
) -> List[ScoreReport]:
    cfg = config or DEFAULT_COMPLEXITY_CONFIG
    return [score_build(b, cfg, site_assigner=site_assigner) for b in builds]
