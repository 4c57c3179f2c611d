"""Workflow-shape warnings: bouncing between areas or stations, merge roles, lineage, naming."""

from __future__ import annotations
from typing import Callable, Dict, List, Optional, Tuple
import re

from schema.models import Build, Step
from kitchen_config.stations import get_station_side
from validation.registry import RuleContext, finding, rule
from validation.types import Severity, ValidationError

GENERIC_ASSEMBLY_ID = re.compile(
    r"^(step\d+_v\d+|s\d+_v\d+|out_.+|assembly\d+_v\d+|tmp_.+|generated_.+)$",
    re.IGNORECASE,
)


def grouping_of(step: Step) -> str:
    """Kitchen area of a step: authored groupingId, else its station's side."""
    return step.grouping_id or get_station_side(step.station_id)


def station_of(step: Step) -> str:
    return step.station_id or "other"


def steps_by_track(steps: List[Step]) -> Dict[str, List[Step]]:
    tracks: Dict[str, List[Step]] = {}
    for step in steps:
        tracks.setdefault(step.track_id or "default", []).append(step)
    return tracks


def visit_indices(steps: List[Step], key: Callable[[Step], str]) -> List[int]:
    """1-based visit number of each step, where a visit is a maximal run of equal keys."""
    out: List[int] = []
    current: Optional[str] = None
    visit = 0
    for step in steps:
        k = key(step)
        if k != current:
            current = k
            visit += 1
        out.append(visit)
    return out


def revisits(steps: List[Step], key: Callable[[Step], str]) -> List[Tuple[str, List[int], int]]:
    """
    Keys visited more than once, as (key, visit numbers, index of the first step
    of the second visit), in first-visit order.
    """
    visits = visit_indices(steps, key)
    by_key: Dict[str, List[int]] = {}
    first_step_of_visit: Dict[int, int] = {}
    for i, (step, v) in enumerate(zip(steps, visits)):
        if v not in first_step_of_visit:
            first_step_of_visit[v] = i
            by_key.setdefault(key(step), []).append(v)
    return [
        (k, vs, first_step_of_visit[vs[1]])
        for k, vs in by_key.items()
        if len(vs) > 1
    ]


@rule("S16a", Severity.STRONG, "build", "a track leaves a kitchen area and returns")
def check_grouping_bounce(build: Build, ctx: RuleContext) -> List[ValidationError]:
    warnings: List[ValidationError] = []
    for track, steps in steps_by_track(ctx.ordered_steps).items():
        for grouping, _visits, idx in revisits(steps, grouping_of):
            warnings.append(
                finding(
                    "S16a",
                    f"S16a: grouping bouncing detected for '{grouping}' in track '{track}'. "
                    "The build leaves this kitchen area and returns to it later, which is inefficient.",
                    step_id=steps[idx].id,
                    field_path="groupingId",
                )
            )
    return warnings


@rule("S16b", Severity.SOFT, "build", "a track leaves a station and returns within one area")
def check_station_bounce(build: Build, ctx: RuleContext) -> List[ValidationError]:
    """
    Station revisits that never leave the area of the revisit.

    A station bounce that passes through a different grouping in between is
    already a grouping bounce and is not reported again here.
    """
    warnings: List[ValidationError] = []
    for track, steps in steps_by_track(ctx.ordered_steps).items():
        visits = visit_indices(steps, station_of)
        for station, vs, idx in revisits(steps, station_of):
            first, second = vs[0], vs[1]
            grouping = grouping_of(steps[idx])
            left_grouping = any(
                first < v < second and grouping_of(s) != grouping
                for s, v in zip(steps, visits)
            )
            if left_grouping:
                continue
            warnings.append(
                finding(
                    "S16b",
                    f"S16b: station bouncing detected for station '{station}' in track '{track}'. "
                    "The build leaves this station and returns to it later within the same grouping.",
                    step_id=steps[idx].id,
                    field_path="stationId",
                )
            )
    return warnings


@rule("H29", Severity.STRONG, "build", "merge steps have exactly one base input")
def check_merge_roles(build: Build, ctx: RuleContext) -> List[ValidationError]:
    warnings: List[ValidationError] = []
    for step in ctx.ordered_steps:
        if len(step.input) < 2 or not step.output:
            continue
        missing = [inp for inp in step.input if not inp.role]
        if missing:
            warnings.append(
                finding(
                    "H29",
                    f"H29: merge step has {len(step.input)} inputs but {len(missing)} are missing role (base/added)",
                    step_id=step.id,
                    field_path="input[].role",
                )
            )
            continue
        bases = sum(1 for inp in step.input if inp.role == "base")
        if bases != 1:
            warnings.append(
                finding(
                    "H29",
                    f"H29: merge step should have exactly 1 base input, found {bases}",
                    step_id=step.id,
                    field_path="input[].role",
                )
            )
    return warnings


@rule("H30", Severity.STRONG, "build", "1:1 transformations record lineage")
def check_lineage(build: Build, ctx: RuleContext) -> List[ValidationError]:
    by_id = build.assembly_by_id()
    warnings: List[ValidationError] = []
    for step in ctx.ordered_steps:
        if len(step.input) != 1 or len(step.output) != 1:
            continue
        inp, out = step.input[0], step.output[0]
        if not inp.in_build or not out.in_build:
            continue
        if inp.assembly_id == out.assembly_id:
            continue
        asm = by_id.get(out.assembly_id or "")
        if asm is None or asm.evolves_from:
            continue
        warnings.append(
            finding(
                "H30",
                f"H30: 1:1 transformation output '{out.assembly_id}' should have "
                f"lineage.evolvesFrom='{inp.assembly_id}'",
                step_id=step.id,
                field_path="assemblies[].lineage.evolvesFrom",
            )
        )
    return warnings


@rule("S21", Severity.SOFT, "build", "assembly ids are descriptive")
def check_assembly_naming(build: Build, ctx: RuleContext) -> List[ValidationError]:
    referenced: List[str] = []
    for step in ctx.ordered_steps:
        for ref in [*step.input, *step.output]:
            if ref.in_build and ref.assembly_id and ref.assembly_id not in referenced:
                referenced.append(ref.assembly_id)
    generic = [aid for aid in referenced if GENERIC_ASSEMBLY_ID.match(aid)]
    if not generic:
        return []
    more = "..." if len(generic) > 8 else ""
    return [
        finding(
            "S21",
            "S21: assembly IDs should be descriptive (avoid step-based names). "
            f"Consider renaming: {', '.join(generic[:8])}{more}",
            field_path="assemblies[].id",
        )
    ]
