"""
Material-flow derivation passes.

Every function here is pure: it receives frozen models and returns new ones.
Fields that are already authored are never overwritten.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Generic, List, Optional, TypeVar

from schema.models import (
    AssemblyRef,
    Build,
    FieldProvenance,
    LocationRef,
    Step,
    StepProvenance,
    Sublocation,
)
from kitchen_config.derivation import (
    FINAL_DESTINATION,
    action_requires_equipment,
    get_default_sublocation_for_action,
    is_storage_retrieval_technique,
)
from kitchen_config.stations import (
    get_default_sublocation,
    is_valid_sublocation_for_station,
)

T = TypeVar("T")


@dataclass(frozen=True)
class DerivedValue(Generic[T]):
    value: T
    derived: bool


def _inferred() -> FieldProvenance:
    return FieldProvenance(type="inferred", confidence="high")


def _with_provenance(step: Step, **fields: FieldProvenance) -> Step:
    base = step.provenance or StepProvenance()
    return step.model_copy(update={"provenance": base.model_copy(update=fields)})


# ---- Work location ----------------------------------------------------------


def _storage_sublocation(station_id: Optional[str]) -> str:
    if station_id and not is_valid_sublocation_for_station(station_id, "cold_storage"):
        return "work_surface"
    return "cold_storage"


def derive_step_work_location(step: Step) -> DerivedValue[Sublocation]:
    """
    Where the step is performed.

    Rules:
    - An authored workLocation is returned as-is (derived=False).
    - Families that require equipment (HEAT) with an appliance set -> equipment sub-location.
    - Storage-retrieval techniques -> cold_storage, or work_surface if the station has none.
    - Otherwise the family default, replaced by the station default when invalid there.
    """
    if step.work_location is not None:
        return DerivedValue(step.work_location, False)

    family = step.family
    station_id = step.station_id

    if action_requires_equipment(family) and step.equipment is not None:
        return DerivedValue(
            Sublocation(type="equipment", equipment_id=step.equipment.appliance_id), True
        )

    if is_storage_retrieval_technique(step.technique_id):
        return DerivedValue(Sublocation(type=_storage_sublocation(station_id)), True)

    default_type = get_default_sublocation_for_action(family)
    if station_id and not is_valid_sublocation_for_station(station_id, default_type):
        default_type = get_default_sublocation(station_id)
    return DerivedValue(Sublocation(type=default_type), True)


def is_likely_derived_work_location(step: Step) -> bool:
    if step.work_location is None:
        return False
    return step.work_location.type == get_default_sublocation_for_action(step.family)


# ---- Output destination -----------------------------------------------------


def derive_output_assembly_location(
    step: Step, next_step: Optional[Step]
) -> Optional[DerivedValue[LocationRef]]:
    """
    Where a step's outputs end up.

    Rules:
    - Last step: expo window shelf.
    - Next step at the same station: stays on the equipment for HEAT with an
      appliance, otherwise the station work surface.
    - Next step elsewhere (or unknown): handoff on the current station work surface.
    - No current station: nothing derivable.
    """
    if next_step is None:
        station, sub = FINAL_DESTINATION
        return DerivedValue(LocationRef(station_id=station, sublocation=Sublocation(type=sub)), True)

    current = step.station_id
    if current and next_step.station_id and current == next_step.station_id:
        if action_requires_equipment(step.family) and step.equipment is not None:
            return DerivedValue(
                LocationRef(
                    station_id=current,
                    sublocation=Sublocation(
                        type="equipment", equipment_id=step.equipment.appliance_id
                    ),
                ),
                True,
            )
        return DerivedValue(
            LocationRef(station_id=current, sublocation=Sublocation(type="work_surface")),
            True,
        )

    if current:
        return DerivedValue(
            LocationRef(station_id=current, sublocation=Sublocation(type="work_surface")),
            True,
        )
    return None


def _has_location(loc: Optional[LocationRef]) -> bool:
    return loc is not None and (bool(loc.station_id) or loc.sublocation is not None)


def derive_output_destinations(step: Step, next_step: Optional[Step]) -> Step:
    if not step.output:
        return step

    destination = derive_output_assembly_location(step, next_step)
    if destination is None:
        return step

    filled = False
    outputs: List[AssemblyRef] = []
    for out in step.output:
        if _has_location(out.to):
            outputs.append(out)
        else:
            outputs.append(out.model_copy(update={"to": destination.value}))
            filled = True

    if not filled:
        return step
    updated = step.model_copy(update={"output": outputs})
    return _with_provenance(updated, to=_inferred())


# ---- Input source -----------------------------------------------------------


def derive_input_sources(step: Step, producer_outputs: Dict[str, LocationRef]) -> Step:
    """
    Fill unset input origins.

    Rules:
    - In-build inputs with a producer inherit the producer's resolved output location.
    - Inputs without a producer on a storage-retrieval step come from cold
      storage (work surface if the station has no cold storage).
    """
    if not step.input:
        return step

    storage_step = is_storage_retrieval_technique(step.technique_id)
    changed = False
    inputs: List[AssemblyRef] = []
    for inp in step.input:
        if _has_location(inp.from_):
            inputs.append(inp)
            continue
        producer_loc = producer_outputs.get(inp.assembly_id) if inp.in_build else None
        if producer_loc is not None:
            inputs.append(inp.model_copy(update={"from_": producer_loc}))
            changed = True
        elif storage_step:
            loc = LocationRef(
                station_id=step.station_id,
                sublocation=Sublocation(type=_storage_sublocation(step.station_id)),
            )
            inputs.append(inp.model_copy(update={"from_": loc}))
            changed = True
        else:
            inputs.append(inp)

    if not changed:
        return step
    return step.model_copy(update={"input": inputs})


# ---- All passes -------------------------------------------------------------


def derive_all_material_flow(build: Build) -> Build:
    """
    Run output-location, input-source and work-location derivation.

    The next step for output destinations is the next element in the step
    array, not the next orderIndex.
    """
    steps = build.steps
    with_outputs = [
        derive_output_destinations(step, steps[i + 1] if i + 1 < len(steps) else None)
        for i, step in enumerate(steps)
    ]

    producer_outputs: Dict[str, LocationRef] = {}
    for step in with_outputs:
        for out in step.output:
            if out.in_build and out.assembly_id and out.to is not None:
                producer_outputs[out.assembly_id] = out.to

    derived_steps: List[Step] = []
    for step in with_outputs:
        step = derive_input_sources(step, producer_outputs)
        work_loc = derive_step_work_location(step)
        if work_loc.derived and step.work_location is None:
            step = step.model_copy(update={"work_location": work_loc.value})
            step = _with_provenance(step, work_location=_inferred())
        derived_steps.append(step)

    return build.model_copy(update={"steps": derived_steps})
