from __future__ import annotations
from typing import Dict, Iterator, List, Optional, Set, Tuple
import re

from schema.models import AssemblyRef, Build, LocationRef, Step
from validation.types import ValidationError

CONTAINER_DETECTION_REGEX = re.compile(
    r"\b(bowl|pan|tray|clamshell|ramekin|cup|bag|foil|lid|lexan|deli.?cup|hotel.?pan|container)\b",
    re.IGNORECASE,
)


def is_non_empty_notes(step: Step) -> bool:
    return bool((step.notes or "").strip())


def canonicalize_cycle_path(nodes: List[str]) -> List[str]:
    """Rotate a cycle (no closing node) so it starts at its smallest id."""
    if not nodes:
        return nodes
    start = nodes.index(min(nodes))
    return nodes[start:] + nodes[:start]


def collect_valid_customization_value_ids(build: Build) -> Set[str]:
    return {v for g in build.customization_groups for v in g.value_ids}


def has_sublocation(loc: Optional[LocationRef]) -> bool:
    return bool(loc is not None and loc.sublocation_type)


def locations_match_for_continuity(
    from_: Optional[LocationRef], to: Optional[LocationRef]
) -> bool:
    """
    Whether an input origin agrees with its producer's output destination.

    Rules:
    - Sub-location types must be equal.
    - Equipment locations must name the same appliance.
    - Station ids only disagree when both are set and differ.
    """
    if from_ is None or to is None:
        return False
    if from_.sublocation_type != to.sublocation_type:
        return False
    if from_.sublocation_type == "equipment" or to.sublocation_type == "equipment":
        return from_.equipment_id == to.equipment_id
    if from_.station_id and to.station_id and from_.station_id != to.station_id:
        return False
    return True


def iter_refs(step: Step) -> Iterator[Tuple[str, AssemblyRef]]:
    """(kind, ref) for every input then every output."""
    for ref in step.input:
        yield "input", ref
    for ref in step.output:
        yield "output", ref


def in_build_outputs(steps: List[Step]) -> Dict[str, List[Tuple[str, Optional[LocationRef]]]]:
    """assembly id -> [(producer step id, output destination)], in the given step order."""
    outputs: Dict[str, List[Tuple[str, Optional[LocationRef]]]] = {}
    for step in steps:
        for out in step.output:
            if not out.in_build:
                continue
            outputs.setdefault(out.assembly_id or "", []).append((step.id, out.to))
    return outputs


# ---- Sorting ----------------------------------------------------------------


def step_order_index_map(build: Build) -> Dict[str, int]:
    return {s.id: (s.order_index or 0) for s in build.steps}


def sort_errors(errors: List[ValidationError], order: Dict[str, int]) -> List[ValidationError]:
    """
    Deterministic ordering of findings.

    Key: (severity rank, rule id, step order, step id, field path, message).
    Build-level findings (no step id) sort before every step; findings for
    unknown step ids sort after all of them.
    """

    def _key(e: ValidationError):
        if e.step_id is None:
            step_order = float("-inf")
        else:
            step_order = order.get(e.step_id, float("inf"))
        return (
            e.severity.rank,
            e.rule_id,
            step_order,
            e.step_id or "",
            e.field_path or "",
            e.message,
        )

    return sorted(errors, key=_key)
