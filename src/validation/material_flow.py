"""Material-flow rules: assembly refs, locations, producers and continuity."""

from __future__ import annotations
from typing import List, Optional
import re

from schema.models import ActionFamily, AssemblyRef, Build, LocationRef, Step
from kitchen_config.derivation import STORAGE_SUBLOCATIONS
from kitchen_config.stations import location_station_candidates
from validation.helpers import (
    has_sublocation,
    in_build_outputs,
    locations_match_for_continuity,
)
from validation.registry import RuleContext, finding, rule
from validation.types import Severity, ValidationError

TRIBUTARY_SOURCE_REGEX = re.compile(
    r"from (steam well|cold rail|dry rail|cold storage|sauce warmer|hot well)",
    re.IGNORECASE,
)

INGREDIENT_ADD_FAMILIES = {
    ActionFamily.PORTION.value,
    ActionFamily.ASSEMBLE.value,
    ActionFamily.COMBINE.value,
}


# ---- Step shape -------------------------------------------------------------


@rule("H38", Severity.HARD, "step", "TRANSFER steps are never authored")
def check_no_authored_transfer(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.family != ActionFamily.TRANSFER.value:
        return []
    return [
        finding(
            "H38",
            "H38: TRANSFER steps are derived-only. Remove authored TRANSFER and model movement "
            "via input/output + locations.",
            step_id=step.id,
            field_path="action.family",
        )
    ]


def _ref_location_errors(
    step: Step, kind: str, index: int, loc: Optional[LocationRef]
) -> List[ValidationError]:
    end = "from" if kind == "input" else "to"
    if not has_sublocation(loc):
        return [
            finding(
                "H40",
                f"H40: {kind}[{index}] requires {end}.sublocation.type",
                step_id=step.id,
                field_path=f"{kind}[{index}].{end}",
            )
        ]
    if loc.sublocation_type == "equipment" and not loc.equipment_id:
        return [
            finding(
                "H40",
                f"H40: {kind}[{index}].{end}.sublocation.type='equipment' requires equipmentId",
                step_id=step.id,
                field_path=f"{kind}[{index}].{end}.sublocation.equipmentId",
            )
        ]
    return []


@rule("H40", Severity.HARD, "step", "assembly refs carry a sub-location")
def check_ref_locations(step: Step, ctx: RuleContext) -> List[ValidationError]:
    errors: List[ValidationError] = []
    for i, inp in enumerate(step.input):
        errors.extend(_ref_location_errors(step, "input", i, inp.from_))
    for i, out in enumerate(step.output):
        errors.extend(_ref_location_errors(step, "output", i, out.to))
    return errors


@rule("H41", Severity.HARD, "step", "every step outputs an assembly")
def check_has_output(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.exclude or step.output:
        return []
    return [
        finding(
            "H41",
            "H41: step requires at least 1 output assembly ref",
            step_id=step.id,
            field_path="output",
        )
    ]


@rule("H42", Severity.HARD, "step", "ambiguous ref locations need a stationId")
def check_ref_station_ambiguity(step: Step, ctx: RuleContext) -> List[ValidationError]:
    errors: List[ValidationError] = []

    def _check(loc: Optional[LocationRef], field_path: str, label: str) -> None:
        if loc is None or not loc.sublocation_type:
            return
        if loc.station_id or step.station_id:
            return
        candidates = location_station_candidates(
            loc.sublocation_type, loc.equipment_id, step.grouping_id
        )
        if len(candidates) <= 1:
            return
        errors.append(
            finding(
                "H42",
                f"H42: {label} requires stationId to disambiguate ({', '.join(candidates)})",
                step_id=step.id,
                field_path=field_path,
            )
        )

    for i, inp in enumerate(step.input):
        _check(inp.from_, f"input[{i}].from.stationId", f"input[{i}]")
    for i, out in enumerate(step.output):
        _check(out.to, f"output[{i}].to.stationId", f"output[{i}]")
    return errors


@rule("H46", Severity.HARD, "step", "every step has a workLocation")
def check_step_work_location(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.exclude:
        return []
    work = step.work_location
    if work is None or not work.type:
        return [
            finding(
                "H46",
                "H46: step.workLocation.type is required",
                step_id=step.id,
                field_path="workLocation",
            )
        ]
    if work.type == "equipment" and not work.equipment_id:
        return [
            finding(
                "H46",
                "H46: step.workLocation.type='equipment' requires equipmentId",
                step_id=step.id,
                field_path="workLocation.equipmentId",
            )
        ]
    return []


# ---- Producers and continuity -----------------------------------------------


@rule("H43", Severity.HARD, "build", "published inputs match their single producer's output")
def check_published_continuity(build: Build, ctx: RuleContext) -> List[ValidationError]:
    if build.status != "published":
        return []
    outputs = in_build_outputs(ctx.ordered_steps)
    errors: List[ValidationError] = []

    for step in ctx.ordered_steps:
        for i, inp in enumerate(step.input):
            if not inp.in_build:
                continue
            aid = inp.assembly_id
            producers = outputs.get(aid or "", [])
            if not producers:
                errors.append(
                    finding(
                        "H43",
                        f"H43: input assembly '{aid}' has no producing step",
                        step_id=step.id,
                        field_path=f"input[{i}].source",
                    )
                )
                continue
            if len(producers) > 1:
                names = ", ".join(p for p, _to in producers)
                errors.append(
                    finding(
                        "H43",
                        f"H43: input assembly '{aid}' has multiple producers ({names})",
                        step_id=step.id,
                        field_path=f"input[{i}].source",
                    )
                )
                continue
            producer_id, to = producers[0]
            if inp.from_ is None or to is None:
                continue
            if not locations_match_for_continuity(inp.from_, to):
                errors.append(
                    finding(
                        "H43",
                        f"H43: input assembly '{aid}' location does not match producer output "
                        f"(producer: {producer_id})",
                        step_id=step.id,
                        field_path=f"input[{i}].from",
                    )
                )
    return errors


@rule("H44", Severity.HARD, "build", "each assembly has at most one producer")
def check_single_producer(build: Build, ctx: RuleContext) -> List[ValidationError]:
    active = [s for s in ctx.ordered_steps if not s.exclude]
    errors: List[ValidationError] = []
    for aid, producers in in_build_outputs(active).items():
        if len(producers) <= 1:
            continue
        names = ", ".join(p for p, _to in producers)
        errors.append(
            finding(
                "H44",
                f"H44: assembly '{aid}' has multiple producers ({names}). "
                "Each step should output a unique assembly version.",
                field_path="assemblies",
            )
        )
    return errors


@rule("S22", Severity.SOFT, "build", "draft inputs match their producer's output")
def check_draft_continuity(build: Build, ctx: RuleContext) -> List[ValidationError]:
    """
    Draft counterpart of H43, graded softer.

    Rules:
    - No producer: soft, unless the origin is a storage sub-location.
    - Several producers: skipped (H44 reports it).
    - Mismatch across stations: info, since a transfer will be derived.
    - Mismatch at one station: soft.
    """
    if build.status == "published":
        return []
    outputs = in_build_outputs(ctx.ordered_steps)
    warnings: List[ValidationError] = []

    for step in ctx.ordered_steps:
        for i, inp in enumerate(step.input):
            if not inp.in_build:
                continue
            aid = inp.assembly_id
            producers = outputs.get(aid or "", [])
            if not producers:
                origin = inp.from_.sublocation_type if inp.from_ else None
                if origin in STORAGE_SUBLOCATIONS:
                    continue
                warnings.append(
                    finding(
                        "S22",
                        f"S22: input assembly '{aid}' has no producing step. Ensure this is intentional.",
                        step_id=step.id,
                        field_path=f"input[{i}].source",
                    )
                )
                continue
            if len(producers) > 1:
                continue

            _producer_id, to = producers[0]
            src = inp.from_
            if src is None or to is None or locations_match_for_continuity(src, to):
                continue
            if src.station_id != to.station_id:
                warnings.append(
                    finding(
                        "S22",
                        f"S22: input assembly '{aid}' moved between stations "
                        f"({to.station_id} → {src.station_id}). A TRANSFER step will be derived.",
                        severity=Severity.INFO,
                        step_id=step.id,
                        field_path=f"input[{i}].from",
                    )
                )
            else:
                warnings.append(
                    finding(
                        "S22",
                        f"S22: input assembly '{aid}' has sublocation mismatch at {src.station_id} "
                        f"(expected: {to.sublocation_type}, got: {src.sublocation_type}). "
                        "This may be an error.",
                        step_id=step.id,
                        field_path=f"input[{i}].from",
                    )
                )
    return warnings


# ---- Soft location hygiene --------------------------------------------------


@rule("S15", Severity.SOFT, "build", "ref stationIds come with a sub-location")
def check_ref_station_without_sublocation(build: Build, ctx: RuleContext) -> List[ValidationError]:
    warnings: List[ValidationError] = []
    for step in ctx.ordered_steps:
        for inp in step.input:
            if inp.in_build and inp.from_ is not None and inp.from_.station_id and not inp.from_.sublocation_type:
                warnings.append(
                    finding(
                        "S15",
                        f"S15: input assembly '{inp.assembly_id}' has from.stationId but missing from.sublocation",
                        step_id=step.id,
                        field_path="input[].from.sublocation",
                    )
                )
        for out in step.output:
            if out.in_build and out.to is not None and out.to.station_id and not out.to.sublocation_type:
                warnings.append(
                    finding(
                        "S15",
                        f"S15: output assembly '{out.assembly_id}' has to.stationId but missing to.sublocation",
                        step_id=step.id,
                        field_path="output[].to.sublocation",
                    )
                )
    return warnings


@rule("S20", Severity.SOFT, "step", "dependsOn without material flow")
def check_depends_without_input(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.exclude or not step.depends_on or step.input:
        return []
    return [
        finding(
            "S20",
            "S20: step has dependsOn but no input[]. Confirm this is a work-only dependency "
            "(not missing material flow).",
            step_id=step.id,
            field_path="dependsOn|input",
        )
    ]


@rule("S17", Severity.INFO, "step", "derived workLocation flagged for review")
def check_derived_work_location(step: Step, ctx: RuleContext) -> List[ValidationError]:
    prov = step.provenance.work_location if step.provenance else None
    if prov is None or prov.type != "inferred":
        return []
    work = step.work_location.type if step.work_location else None
    return [
        finding(
            "S17",
            f"S17: workLocation '{work}' was derived (review recommended)",
            step_id=step.id,
            field_path="workLocation",
        )
    ]


@rule("S18", Severity.INFO, "step", "derived output destination flagged for review")
def check_derived_destination(step: Step, ctx: RuleContext) -> List[ValidationError]:
    prov = step.provenance.to if step.provenance else None
    if prov is None or prov.type != "inferred":
        return []
    return [
        finding(
            "S18",
            "S18: output destination was derived (review recommended)",
            step_id=step.id,
            field_path="to",
        )
    ]


@rule("S23", Severity.SOFT, "step", "inputs pulled from another station hide a transfer")
def check_implicit_transfer(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.family == ActionFamily.TRANSFER.value:
        return []
    current = step.station_id
    if not current or current == "other":
        return []
    warnings: List[ValidationError] = []
    for i, inp in enumerate(step.input):
        src = inp.from_
        if src is None or not src.station_id or src.station_id == current:
            continue
        if src.sublocation_type in STORAGE_SUBLOCATIONS:
            continue
        warnings.append(
            finding(
                "S23",
                f"S23: step at '{current}' inputs from '{src.station_id}'. This hides a transfer "
                f"inside the step. Fix: set input.from.stationId='{current}' to trigger derived transfer.",
                step_id=step.id,
                field_path=f"input[{i}].from.stationId",
            )
        )
    return warnings


@rule("S45", Severity.SOFT, "step", "instruction names an ingredient source missing from output[].from")
def check_tributary_source(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.family not in INGREDIENT_ADD_FAMILIES:
        return []
    if not step.input or not step.output:
        return []
    if not TRIBUTARY_SOURCE_REGEX.search(step.instruction or ""):
        return []
    if not any(out.in_build and out.from_ is None for out in step.output):
        return []
    return [
        finding(
            "S45",
            "S45: instruction mentions ingredient source but output[].from is missing. "
            "Add output[].from to enable tributary edges in viewer.",
            step_id=step.id,
            field_path="output[].from",
        )
    ]


def _ref_label(ref: AssemblyRef) -> str:
    return ref.assembly_id if ref.in_build else f"external:{ref.source.item_id}"


@rule("H31", Severity.SOFT, "step", "every ref location names a station", default_enabled=False)
def check_ref_station_ids(step: Step, ctx: RuleContext) -> List[ValidationError]:
    warnings: List[ValidationError] = []
    for i, inp in enumerate(step.input):
        if inp.from_ is None or not inp.from_.station_id:
            warnings.append(
                finding(
                    "H31",
                    f"H31: input[{i}] ({_ref_label(inp)}) requires from.stationId",
                    step_id=step.id,
                    field_path=f"input[{i}].from.stationId",
                )
            )
    for i, out in enumerate(step.output):
        if out.to is None or not out.to.station_id:
            warnings.append(
                finding(
                    "H31",
                    f"H31: output[{i}] ({_ref_label(out)}) requires to.stationId",
                    step_id=step.id,
                    field_path=f"output[{i}].to.stationId",
                )
            )
    return warnings
