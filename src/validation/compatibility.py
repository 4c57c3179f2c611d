"""Rules checked against the static kitchen tables (stations, equipment, techniques)."""

from __future__ import annotations
from typing import List

from schema.models import Step
from kitchen_config.stations import (
    can_derive_station_from_equipment,
    is_equipment_available_at_station,
    is_shared_equipment,
    is_valid_sublocation_for_station,
    location_station_candidates,
    stations_for_sublocation,
    filter_candidates_by_grouping,
)
from kitchen_config.techniques import get_technique_action_family, is_known_technique
from validation.registry import RuleContext, finding, rule
from validation.types import Severity, ValidationError


@rule("H32", Severity.HARD, "step", "workLocation exists at the step's station")
def check_work_location_at_station(step: Step, ctx: RuleContext) -> List[ValidationError]:
    work = step.work_location.type if step.work_location else None
    if not step.station_id or not work:
        return []
    if is_valid_sublocation_for_station(step.station_id, work):
        return []
    return [
        finding(
            "H32",
            f"H32: workLocation '{work}' is not valid for station '{step.station_id}'",
            step_id=step.id,
            field_path="workLocation.type",
        )
    ]


@rule("H33", Severity.HARD, "step", "techniqueId is known and matches the action family")
def check_technique_vocabulary(step: Step, ctx: RuleContext) -> List[ValidationError]:
    technique = step.technique_id
    if not technique:
        return []
    if not is_known_technique(technique):
        return [
            finding(
                "H33",
                f"H33: techniqueId '{technique}' is not in the controlled vocabulary",
                step_id=step.id,
                field_path="action.techniqueId",
            )
        ]
    expected = get_technique_action_family(technique)
    if expected is not None and expected.value != step.family:
        return [
            finding(
                "H33",
                f"H33: techniqueId '{technique}' belongs to {expected.value}, not {step.family}",
                step_id=step.id,
                field_path="action.techniqueId",
            )
        ]
    return []


@rule("H35", Severity.HARD, "step", "equipment is available at the step's station")
def check_equipment_at_station(step: Step, ctx: RuleContext) -> List[ValidationError]:
    appliance = step.appliance_id
    if not step.station_id or not appliance:
        return []
    if is_equipment_available_at_station(appliance, step.station_id):
        return []
    return [
        finding(
            "H35",
            f"H35: equipment '{appliance}' is not available at station '{step.station_id}'",
            step_id=step.id,
            field_path="equipment.applianceId",
        )
    ]


@rule("H36", Severity.HARD, "step", "an ambiguous workLocation needs a stationId")
def check_work_location_ambiguity(step: Step, ctx: RuleContext) -> List[ValidationError]:
    """
    Rules:
    - Steps with a stationId, or with equipment offered by a single station, pass.
    - Candidates are the stations offering the workLocation (the appliance for
      an equipment location with an id), narrowed by grouping.
    - More than one candidate is an error.
    """
    if step.station_id:
        return []
    if step.appliance_id and can_derive_station_from_equipment(step.appliance_id):
        return []
    work = step.work_location
    if work is None or not work.type:
        return []

    if work.type == "equipment" and work.equipment_id:
        candidates = location_station_candidates(work.type, work.equipment_id, step.grouping_id)
    else:
        candidates = filter_candidates_by_grouping(stations_for_sublocation(work.type), step.grouping_id)

    if len(candidates) <= 1:
        return []
    return [
        finding(
            "H36",
            f"H36: step.workLocation requires stationId to disambiguate ({', '.join(candidates)})",
            step_id=step.id,
            field_path="stationId",
        )
    ]


@rule("H37", Severity.HARD, "step", "shared equipment needs a stationId")
def check_shared_equipment_station(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.station_id or not step.appliance_id:
        return []
    if not is_shared_equipment(step.appliance_id):
        return []
    return [
        finding(
            "H37",
            f"H37: Equipment '{step.appliance_id}' is available at multiple stations - stationId required",
            step_id=step.id,
            field_path="stationId",
        )
    ]
