from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from complexity.config import Rating


class _Report(BaseModel):
    """Result values: snake_case attributes, camelCase when dumped by alias."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


# ---- Features ---------------------------------------------------------------


class StepFeatures(_Report):
    step_id: str
    station_side: str
    station_id: Optional[str] = None
    action_family: Optional[str] = None
    technique_id: Optional[str] = None
    equipment_id: Optional[str] = None
    duration_seconds: float = 0
    is_active: bool = False
    is_hot_side: bool = False
    is_cold_side: bool = False
    is_expo: bool = False
    is_vending: bool = False
    input_count: int = 0
    output_count: int = 0
    quantity_value: Optional[float] = None


class BuildFeatures(_Report):
    build_id: str
    step_count: int
    hot_side_step_count: int = 0
    cold_side_step_count: int = 0
    expo_step_count: int = 0
    vending_step_count: int = 0
    unique_stations: List[str] = Field(default_factory=list)
    unique_equipment: List[str] = Field(default_factory=list)
    unique_action_families: List[str] = Field(default_factory=list)
    total_duration_seconds: float = 0
    total_active_seconds: float = 0
    entry_point_count: int = 0
    step_features: List[StepFeatures] = Field(default_factory=list)


# ---- Signals ----------------------------------------------------------------


class SignalDetail(_Report):
    step_ids: List[str]
    description: str


class StructuralSignals(_Report):
    grouping_bounces: int = 0
    station_bounces: int = 0
    merge_point_count: int = 0
    deep_merge_count: int = 0
    parallel_entry_points: int = 0
    short_equipment_steps: int = 0
    back_to_back_equipment: int = 0
    transfer_count: int = 0
    station_transitions: int = 0
    # Keyed by signal name (camelCase); only non-empty signals appear
    details: Dict[str, List[SignalDetail]] = Field(default_factory=dict)

    def counts(self) -> Dict[str, int]:
        """Signal name (camelCase) -> count."""
        return {
            "groupingBounces": self.grouping_bounces,
            "stationBounces": self.station_bounces,
            "mergePointCount": self.merge_point_count,
            "deepMergeCount": self.deep_merge_count,
            "parallelEntryPoints": self.parallel_entry_points,
            "shortEquipmentSteps": self.short_equipment_steps,
            "backToBackEquipment": self.back_to_back_equipment,
            "transferCount": self.transfer_count,
            "stationTransitions": self.station_transitions,
        }


# ---- Scores -----------------------------------------------------------------


class StepEffort(_Report):
    step_id: str
    location_score: float
    technique_score: float
    equipment_score: float
    action_family_score: float
    total_effort: float
    explanation: List[str] = Field(default_factory=list)


class CategoryBreakdown(_Report):
    location: float = 0
    technique: float = 0
    equipment: float = 0
    packaging: float = 0
    station_movement: float = 0
    task_count: float = 0
    structural_signals: float = 0


class TopContributor(_Report):
    source: str
    type: Literal["step", "signal"]
    contribution: float
    explanation: str


class ScoreReport(_Report):
    build_id: str
    raw_score: float
    normalized_score: Optional[float] = None
    rating: Rating
    hot_ratio: float
    breakdown: CategoryBreakdown
    top_contributors: List[TopContributor] = Field(default_factory=list)
    signals: StructuralSignals
    features: BuildFeatures
    step_efforts: List[StepEffort] = Field(default_factory=list)
    calculated_at: datetime
    config_version: str


# ---- Portfolio --------------------------------------------------------------


class PortfolioStats(_Report):
    build_count: int = 0
    min: float = 0
    max: float = 0
    p50: float = 0
    p75: float = 0
    p95: float = 0
    mean: float = 0
    std_dev: float = 0


class RankingEntry(_Report):
    build_id: str
    raw_score: float
    normalized_score: float
    rating: Rating


class PortfolioScoreResult(_Report):
    reports: List[ScoreReport]
    stats: PortfolioStats
    ranking: List[RankingEntry]
    calculated_at: datetime


# ---- Weight-impact preview --------------------------------------------------


class ScoreSnapshot(_Report):
    raw_score: float
    rating: Rating
    rank: int


class ImpactDelta(_Report):
    raw_score: float
    rating_changed: bool
    # Positive = moved up the ranking
    rank_shift: int


class BuildImpact(_Report):
    build_id: str
    baseline: ScoreSnapshot
    preview: ScoreSnapshot
    delta: ImpactDelta


class RatingMigration(_Report):
    from_: Rating = Field(alias="from")
    to: Rating
    count: int
    build_ids: List[str]


class StatsDelta(_Report):
    mean: float
    p50: float
    p95: float
    std_dev: float


class StatsComparison(_Report):
    baseline: PortfolioStats
    preview: PortfolioStats
    delta: StatsDelta


class RankEntry(_Report):
    build_id: str
    rank: int


class BaselineCache(_Report):
    """Baseline scoring kept around so repeated previews only score the proposed config."""

    reports: List[ScoreReport]
    stats: PortfolioStats
    ranking: List[RankEntry]


class WeightImpactPreview(_Report):
    build_impacts: List[BuildImpact]
    migrations: List[RatingMigration]
    stats: StatsComparison
    rating_changed_count: int
    rank_changed_count: int
    calculated_at: datetime
