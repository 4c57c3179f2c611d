"""Scoring weights and thresholds, plus YAML load/save.

The config is a plain value passed to every scoring call. DEFAULT_COMPLEXITY_CONFIG
is only picked up by the top-level entry points when the caller passes nothing.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Literal, Optional
import logging

import yaml
from pydantic import BaseModel, ConfigDict, Field, NonNegativeFloat, ValidationError

logger = logging.getLogger(__name__)

SignalName = Literal[
    "groupingBounces",
    "stationBounces",
    "mergePointCount",
    "deepMergeCount",
    "parallelEntryPoints",
    "shortEquipmentSteps",
    "backToBackEquipment",
    "transferCount",
    "stationTransitions",
]

SIGNAL_NAMES = (
    "groupingBounces",
    "stationBounces",
    "mergePointCount",
    "deepMergeCount",
    "parallelEntryPoints",
    "shortEquipmentSteps",
    "backToBackEquipment",
    "transferCount",
    "stationTransitions",
)

Rating = Literal["low", "medium", "high", "very_high"]
RATINGS = ("low", "medium", "high", "very_high")


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class WeightTable(_Section):
    default: NonNegativeFloat = 1.0
    overrides: Dict[str, NonNegativeFloat] = Field(default_factory=dict)


class LocationWeights(_Section):
    hot_side: NonNegativeFloat = 2.0
    cold_side: NonNegativeFloat = 1.0
    expo: NonNegativeFloat = 0.5
    vending: NonNegativeFloat = 0.3


class RatingThresholds(_Section):
    low: NonNegativeFloat = 20
    medium: NonNegativeFloat = 45
    high: NonNegativeFloat = 75


class Thresholds(_Section):
    short_equipment_seconds: NonNegativeFloat = 45
    ratings: RatingThresholds = Field(default_factory=RatingThresholds)


class CategoryMultipliers(_Section):
    location: NonNegativeFloat = 1.0
    technique: NonNegativeFloat = 1.0
    packaging: NonNegativeFloat = 0.8
    station_movement: NonNegativeFloat = 1.2
    task_count: NonNegativeFloat = 0.5


DEFAULT_TECHNIQUE_OVERRIDES: Dict[str, float] = {
    "fry": 1.8,
    "saute": 1.5,
    "grill": 1.5,
    "broil": 1.4,
    "bake": 1.3,
    "sous_vide": 1.2,
    "steam": 1.2,
    "press": 1.2,
    "toast": 1.0,
    "reheat": 0.8,
    "scoop": 0.5,
    "pour": 0.5,
    "dispense": 0.4,
    "vend": 0.3,
    "dice": 1.2,
    "slice": 1.0,
    "chop": 1.0,
    "wash": 0.5,
    "peel": 0.8,
    "open_pack": 0.3,
    "get": 0.2,
    "place": 0.2,
    "retrieve": 0.2,
    "move": 0.3,
    "pass": 0.2,
    "handoff": 0.3,
}

DEFAULT_EQUIPMENT_OVERRIDES: Dict[str, float] = {
    "fryer": 2.0,
    "clamshell_grill": 1.8,
    "pizza_oven": 1.8,
    "pizza_conveyor_oven": 1.5,
    "turbo": 1.5,
    "waterbath": 1.3,
    "toaster": 1.2,
    "press": 1.2,
    "microwave": 1.0,
    "hot_box": 0.5,
    "hot_well": 0.5,
    "steam_well": 0.5,
    "sauce_warmer": 0.4,
    "vending": 0.3,
}

DEFAULT_SIGNAL_WEIGHTS: Dict[str, float] = {
    "groupingBounces": 5.0,
    "stationBounces": 2.0,
    "mergePointCount": 1.5,
    "deepMergeCount": 3.0,
    "parallelEntryPoints": 0.5,
    "shortEquipmentSteps": 1.0,
    "backToBackEquipment": 1.5,
    "transferCount": 0.5,
    "stationTransitions": 1.0,
}

DEFAULT_ACTION_FAMILY_WEIGHTS: Dict[str, float] = {
    "HEAT": 2.0,
    "PREP": 1.2,
    "ASSEMBLE": 1.0,
    "COMBINE": 1.0,
    "PORTION": 0.8,
    "PACKAGING": 0.6,
    "CHECK": 0.4,
    "TRANSFER": 0.3,
    "OTHER": 1.0,
}


class ComplexityConfig(_Section):
    version: str = "1.0.0"
    technique: WeightTable = Field(
        default_factory=lambda: WeightTable(overrides=DEFAULT_TECHNIQUE_OVERRIDES)
    )
    location: LocationWeights = Field(default_factory=LocationWeights)
    equipment: WeightTable = Field(
        default_factory=lambda: WeightTable(overrides=DEFAULT_EQUIPMENT_OVERRIDES)
    )
    signals: Dict[SignalName, NonNegativeFloat] = Field(
        default_factory=lambda: dict(DEFAULT_SIGNAL_WEIGHTS)
    )
    thresholds: Thresholds = Field(default_factory=Thresholds)
    category_multipliers: CategoryMultipliers = Field(default_factory=CategoryMultipliers)
    action_family_weights: Dict[str, NonNegativeFloat] = Field(
        default_factory=lambda: dict(DEFAULT_ACTION_FAMILY_WEIGHTS)
    )

    def with_updates(self, updates: Dict[str, Any]) -> "ComplexityConfig":
        """New config with a nested partial mapping merged over this one (validated)."""
        merged = _deep_merge(self.model_dump(), updates)
        return ComplexityConfig.model_validate(merged)


DEFAULT_COMPLEXITY_CONFIG = ComplexityConfig()


# ---- Weight lookups ---------------------------------------------------------


def get_technique_weight(config: ComplexityConfig, technique_id: Optional[str]) -> float:
    if not technique_id:
        return config.technique.default
    return config.technique.overrides.get(technique_id, config.technique.default)


def get_location_weight(config: ComplexityConfig, side: Optional[str]) -> float:
    """Weight for a station side; anything unrecognized is weighted as cold side."""
    if side in LocationWeights.model_fields:
        return getattr(config.location, side)
    return config.location.cold_side


def get_equipment_weight(config: ComplexityConfig, appliance_id: Optional[str]) -> float:
    if not appliance_id:
        return 0.0
    return config.equipment.overrides.get(appliance_id, config.equipment.default)


def get_signal_weight(config: ComplexityConfig, signal: str) -> float:
    return config.signals.get(signal, 0.0)


def get_action_family_weight(config: ComplexityConfig, family: Optional[str]) -> float:
    if not family:
        return 1.0
    return config.action_family_weights.get(family, 1.0)


def get_complexity_rating(config: ComplexityConfig, score: float) -> Rating:
    """Fixed-threshold rating: each cut-point is inclusive of its tier."""
    ratings = config.thresholds.ratings
    if score <= ratings.low:
        return "low"
    if score <= ratings.medium:
        return "medium"
    if score <= ratings.high:
        return "high"
    return "very_high"


# ---- File I/O ---------------------------------------------------------------


def _deep_merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _deep_merge(out[key], value)
        else:
            out[key] = value
    return out


def load_complexity_config(path: str | Path) -> ComplexityConfig:
    """
    Read a YAML config and merge it over the defaults.

    Partial files are fine: override tables and sections are merged key by key.

    Raises:
        ValueError: the file is not a mapping or fails validation.
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"complexity config {path}: expected a mapping, got {type(raw).__name__}")
    try:
        config = DEFAULT_COMPLEXITY_CONFIG.with_updates(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid complexity config {path}:\n{exc}") from exc
    logger.info("Loaded complexity config %s from %s", config.version, path)
    return config


def save_complexity_config(config: ComplexityConfig, path: str | Path) -> None:
    data = config.model_dump(mode="json")
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False)
    logger.info("Saved complexity config %s to %s", config.version, path)
