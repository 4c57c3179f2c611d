from __future__ import annotations
from typing import List, Optional

from schema.models import Build, Step
from kitchen_config.stations import get_station_side
from kitchen_config.techniques import normalize_technique
from complexity.types import BuildFeatures, StepFeatures


def canonicalize_technique(technique_id: Optional[str]) -> Optional[str]:
    """Canonical id for known techniques and aliases; unknown ids pass through unchanged."""
    if not technique_id:
        return None
    return normalize_technique(technique_id) or technique_id


def step_side(step: Step) -> str:
    """groupingId when set, else the station's side."""
    return step.grouping_id or get_station_side(step.station_id)


def scoring_order(steps: List[Step]) -> List[Step]:
    """Steps by orderIndex only; ties keep document order."""
    return sorted(steps, key=lambda s: s.order_index or 0)


def extract_step_features(step: Step) -> StepFeatures:
    side = step_side(step)
    return StepFeatures(
        step_id=step.id,
        station_side=side,
        station_id=step.station_id,
        action_family=step.family,
        technique_id=canonicalize_technique(step.technique_id),
        equipment_id=step.appliance_id,
        duration_seconds=step.time.duration_seconds if step.time else 0,
        is_active=step.time.is_active if step.time else False,
        is_hot_side=side == "hot_side",
        is_cold_side=side == "cold_side",
        is_expo=side == "expo",
        is_vending=side == "vending",
        input_count=len(step.input),
        output_count=len(step.output),
        quantity_value=step.quantity.value if step.quantity else None,
    )


def extract_build_features(build: Build) -> BuildFeatures:
    steps = scoring_order(build.steps)
    features = [extract_step_features(s) for s in steps]

    stations: List[str] = []
    equipment: List[str] = []
    families: List[str] = []
    for sf in features:
        if sf.station_id and sf.station_id not in stations:
            stations.append(sf.station_id)
        if sf.equipment_id and sf.equipment_id not in equipment:
            equipment.append(sf.equipment_id)
        if sf.action_family and sf.action_family not in families:
            families.append(sf.action_family)

    return BuildFeatures(
        build_id=build.id,
        step_count=len(steps),
        hot_side_step_count=sum(1 for sf in features if sf.is_hot_side),
        cold_side_step_count=sum(1 for sf in features if sf.is_cold_side),
        expo_step_count=sum(1 for sf in features if sf.is_expo),
        vending_step_count=sum(1 for sf in features if sf.is_vending),
        unique_stations=stations,
        unique_equipment=equipment,
        unique_action_families=families,
        total_duration_seconds=sum(sf.duration_seconds for sf in features),
        total_active_seconds=sum(sf.duration_seconds for sf in features if sf.is_active),
        entry_point_count=sum(1 for s in steps if not s.depends_on),
        step_features=features,
    )


def compute_hot_cold_ratio(features: BuildFeatures) -> float:
    """hot / (hot + cold); expo and vending steps are left out. 0 when neither side appears."""
    total = features.hot_side_step_count + features.cold_side_step_count
    if total == 0:
        return 0.0
    return features.hot_side_step_count / total
