from __future__ import annotations
from typing import Dict, List, Optional, Tuple

from schema.models import Build


def assembly_producers(build: Build) -> Dict[str, str]:
    """Map in-build assembly id -> producing step id (last producer in step order wins)."""
    producers: Dict[str, str] = {}
    for step in build.steps:
        for out in step.output:
            if out.in_build and out.assembly_id:
                producers[out.assembly_id] = step.id
    return producers


def derive_dependencies(build: Build) -> List[Tuple[str, str]]:
    """
    Implicit (producer, consumer) edges from shared assemblies.

    Rules:
    - A consumer depends on the step producing each in-build input assembly.
    - When an assembly has several producers the last one in step order is used.
    - Self-edges are skipped.
    """
    producers = assembly_producers(build)
    deps: List[Tuple[str, str]] = []
    for step in build.steps:
        for inp in step.input:
            if not inp.in_build or not inp.assembly_id:
                continue
            producer = producers.get(inp.assembly_id)
            if producer and producer != step.id:
                deps.append((producer, step.id))
    return deps


def compute_assembly_components(build: Build) -> Dict[str, List[str]]:
    """
    Trace underlying component entries through the graph.

    Each assembly starts with its own sub-assemblies and BOM usage id; every
    step then passes the union of its inputs' entries on to its outputs, in
    step order.
    """
    entries: Dict[str, List[str]] = {}

    def _add(aid: str, values: List[str]) -> None:
        bucket = entries.setdefault(aid, [])
        for v in values:
            if v not in bucket:
                bucket.append(v)

    for asm in build.assemblies:
        if asm.sub_assemblies:
            _add(asm.id, asm.sub_assemblies)
        if asm.bom_usage_id:
            _add(asm.id, [asm.bom_usage_id])

    for step in build.steps:
        carried: List[str] = []
        for inp in step.input:
            if inp.in_build and inp.assembly_id:
                for e in entries.get(inp.assembly_id, []):
                    if e not in carried:
                        carried.append(e)
        for out in step.output:
            if out.in_build and out.assembly_id:
                _add(out.assembly_id, carried)

    return entries


def resolve_latest_in_group(build: Build, group_id: str) -> Optional[str]:
    """Most recent assembly of a group: the member output last in step order."""
    members = [a.id for a in build.assemblies if a.group_id == group_id]
    if not members:
        return None
    if len(members) == 1:
        return members[0]

    latest = members[0]
    member_set = set(members)
    for step in build.steps:
        for out in step.output:
            if out.in_build and out.assembly_id in member_set:
                latest = out.assembly_id
    return latest
