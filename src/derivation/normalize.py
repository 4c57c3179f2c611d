from __future__ import annotations
from typing import Dict, List, Optional, Set
import logging
import re

from schema.models import (
    Assembly,
    AssemblyLineage,
    AssemblyRef,
    Build,
    LocationRef,
    Step,
    dependency_step_id,
)
from kitchen_config.stations import (
    filter_candidates_by_grouping,
    get_station_for_unique_equipment,
    stations_for_equipment,
    stations_for_sublocation,
)
from derivation.derive import derive_all_material_flow
from derivation.flow import derive_dependencies

logger = logging.getLogger(__name__)

# Normalization only fills missing fields, so it converges quickly
MAX_NORMALIZE_PASSES = 5

_GROUP_SUFFIXES = (
    re.compile(r"_v\d+$"),
    re.compile(r"_positioned$"),
    re.compile(r"_ready$"),
    re.compile(r"_complete$"),
)


# ---- Station inference ------------------------------------------------------


def _station_for_location(
    loc: Optional[LocationRef], grouping_id: Optional[str]
) -> Optional[str]:
    if loc is None or loc.sublocation is None:
        return None
    if loc.station_id:
        return loc.station_id
    sub = loc.sublocation
    if sub.type == "equipment" and sub.equipment_id:
        candidates = stations_for_equipment(sub.equipment_id)
    else:
        candidates = stations_for_sublocation(sub.type)
    filtered = filter_candidates_by_grouping(candidates, grouping_id)
    return filtered[0] if len(filtered) == 1 else None


def derive_station_id(step: Step) -> Optional[str]:
    """
    Station for a step.

    Rules:
    - An authored stationId wins.
    - Equipment offered by exactly one station pins that station.
    - Otherwise the workLocation's candidate stations (narrowed by grouping)
      are used, but only when exactly one remains. An equipment workLocation
      without an appliance id falls back to the step's appliance.
    """
    if step.station_id:
        return step.station_id

    unique = get_station_for_unique_equipment(step.appliance_id)
    if unique:
        return unique

    if step.work_location is None:
        return None

    sub = step.work_location
    if sub.type == "equipment" and not sub.equipment_id and step.appliance_id:
        sub = sub.model_copy(update={"equipment_id": step.appliance_id})
    return _station_for_location(LocationRef(sublocation=sub), step.grouping_id)


def _apply_station(loc: Optional[LocationRef], step: Step) -> Optional[LocationRef]:
    if loc is None or loc.sublocation is None or loc.station_id:
        return loc
    if step.station_id:
        return loc.model_copy(update={"station_id": step.station_id})
    derived = _station_for_location(loc, step.grouping_id)
    if derived:
        return loc.model_copy(update={"station_id": derived})
    return loc


def _normalize_step_locations(step: Step) -> Step:
    station = derive_station_id(step)
    if station and station != step.station_id:
        step = step.model_copy(update={"station_id": station})

    inputs = [inp.model_copy(update={"from_": _apply_station(inp.from_, step)}) for inp in step.input]
    outputs = [out.model_copy(update={"to": _apply_station(out.to, step)}) for out in step.output]
    return step.model_copy(update={"input": inputs, "output": outputs})


# ---- Assemblies -------------------------------------------------------------


def derive_group_id(assembly: Assembly, by_id: Dict[str, Assembly]) -> str:
    """Group id: authored value, else the lineage root's id with version suffixes stripped."""
    if assembly.group_id:
        return assembly.group_id

    root = assembly
    visited: Set[str] = set()
    while root.evolves_from and root.id not in visited:
        visited.add(root.id)
        parent = by_id.get(root.evolves_from)
        if parent is None:
            break
        root = parent

    gid = root.id
    for pattern in _GROUP_SUFFIXES:
        gid = pattern.sub("", gid)
    return gid


def _referenced_assembly_ids(steps: List[Step]) -> List[str]:
    seen: List[str] = []
    for step in steps:
        for ref in list(step.input) + list(step.output):
            if ref.in_build and ref.assembly_id and ref.assembly_id not in seen:
                seen.append(ref.assembly_id)
    return seen


def _choose_merge_base(
    inputs: List[AssemblyRef], output_group: Optional[str], by_id: Dict[str, Assembly]
) -> Optional[int]:
    """Index (into inputs) of the base input of a merge, or None if roles are already ambiguous."""
    marked = [i for i, ref in enumerate(inputs) if ref.role == "base"]
    if len(marked) == 1:
        return marked[0]
    if marked:
        return None

    def _is_composite(ref: AssemblyRef) -> bool:
        asm = by_id.get(ref.assembly_id or "")
        return asm is not None and len(asm.sub_assemblies) > 1

    def _group(ref: AssemblyRef) -> Optional[str]:
        asm = by_id.get(ref.assembly_id or "")
        return asm.group_id if asm else None

    matches: List[int] = []
    if output_group:
        matches = [i for i, ref in enumerate(inputs) if _group(ref) == output_group]
    if len(matches) == 1:
        return matches[0]
    if matches:
        return next((i for i in matches if _is_composite(inputs[i])), matches[0])
    return next((i for i, ref in enumerate(inputs) if _is_composite(ref)), 0)


def _assign_roles_and_lineage(steps: List[Step], assemblies: List[Assembly]):
    by_id: Dict[str, Assembly] = {a.id: a for a in assemblies}
    new_steps: List[Step] = []

    for step in steps:
        in_refs = [i for i, ref in enumerate(step.input) if ref.in_build]
        out_refs = [ref for ref in step.output if ref.in_build]
        if not in_refs or not out_refs:
            new_steps.append(step)
            continue

        inputs = list(step.input)

        if len(in_refs) == 1 and len(out_refs) == 1:
            in_id = inputs[in_refs[0]].assembly_id
            out_asm = by_id.get(out_refs[0].assembly_id or "")
            if out_asm is not None and not out_asm.evolves_from:
                by_id[out_asm.id] = out_asm.model_copy(
                    update={"lineage": AssemblyLineage(evolves_from=in_id)}
                )
            if inputs[in_refs[0]].role is None:
                inputs[in_refs[0]] = inputs[in_refs[0]].model_copy(update={"role": "base"})
            new_steps.append(step.model_copy(update={"input": inputs}))
            continue

        if len(in_refs) > 1 and len(out_refs) == 1:
            out_asm = by_id.get(out_refs[0].assembly_id or "")
            out_group = out_asm.group_id if out_asm else None
            merge_inputs = [inputs[i] for i in in_refs]
            base_local = _choose_merge_base(merge_inputs, out_group, by_id)
            for local, idx in enumerate(in_refs):
                if inputs[idx].role is not None:
                    continue
                role = "base" if base_local is not None and local == base_local else "added"
                inputs[idx] = inputs[idx].model_copy(update={"role": role})
            new_steps.append(step.model_copy(update={"input": inputs}))
            continue

        new_steps.append(step)

    new_assemblies = [by_id[a.id] for a in assemblies]
    return new_steps, new_assemblies


def _normalize_assemblies(build: Build) -> Build:
    assemblies = list(build.assemblies)
    existing = {a.id for a in assemblies}
    for aid in _referenced_assembly_ids(build.steps):
        if aid not in existing:
            logger.debug("build %s: stubbing undeclared assembly %s", build.id, aid)
            assemblies.append(Assembly(id=aid, name=aid, type="intermediate"))
            existing.add(aid)

    by_id = {a.id: a for a in assemblies}
    assemblies = [
        a if a.group_id else a.model_copy(update={"group_id": derive_group_id(a, by_id)})
        for a in assemblies
    ]

    steps, assemblies = _assign_roles_and_lineage(list(build.steps), assemblies)
    return build.model_copy(update={"steps": steps, "assemblies": assemblies})


# ---- Dependencies -----------------------------------------------------------


def _union_dependencies(build: Build) -> Build:
    derived: Dict[str, List[str]] = {}
    for producer, consumer in derive_dependencies(build):
        derived.setdefault(consumer, []).append(producer)

    steps: List[Step] = []
    for step in build.steps:
        deps = list(step.depends_on)
        present = {dependency_step_id(d) for d in deps}
        for producer in derived.get(step.id, []):
            if producer not in present:
                deps.append(producer)
                present.add(producer)
        deps.sort(key=dependency_step_id)
        steps.append(step.model_copy(update={"depends_on": deps}))
    return build.model_copy(update={"steps": steps})


# ---- Entry point ------------------------------------------------------------


def _normalize_once(build: Build) -> Build:
    steps = [_normalize_step_locations(s) for s in build.steps]
    out = build.model_copy(update={"steps": steps})
    out = _normalize_assemblies(out)
    out = derive_all_material_flow(out)
    return _union_dependencies(out)


def _snapshot(build: Build) -> dict:
    return build.model_dump(by_alias=True, exclude_none=True, mode="json")


def normalize_build(build: Build) -> Build:
    """
    Fill in everything an author left implicit and return a new Build.

    Passes (all fill-only, never overwriting authored values):
    - station ids from unique equipment or an unambiguous workLocation,
      then applied to input origins / output destinations lacking one;
    - stub assemblies for undeclared in-build references;
    - group ids from the lineage root with version suffixes stripped;
    - lineage for 1:1 steps and a single "base" role for merge inputs;
    - output destinations, input origins and work locations;
    - dependency edges from producer/consumer pairs, unioned with authored ones.

    Later passes can unlock earlier ones (a derived workLocation may pin a
    station), so the passes repeat until the build stops changing. The
    caller's build is never mutated.
    """
    current = build
    before = _snapshot(current)
    for _ in range(MAX_NORMALIZE_PASSES):
        nxt = _normalize_once(current)
        after = _snapshot(nxt)
        if after == before:
            return nxt
        current, before = nxt, after
    logger.debug("build %s: normalization did not settle in %d passes", build.id, MAX_NORMALIZE_PASSES)
    return current
