from __future__ import annotations
from typing import Any, Dict, List, Optional
import hashlib
import json

from pydantic import BaseModel

from schema.models import Build

HASH_LENGTH = 16


def _dump(value: Optional[Any]) -> Any:
    if value is None:
        return None
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_none=True, mode="json")
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


def hash_source(build: Build) -> Dict[str, List[Dict[str, Any]]]:
    """
    The slice of a build that transfer derivation depends on.

    Steps contribute ids, ordering, dependencies, material-flow refs and
    locations; assemblies contribute ids, group ids and lineage. Notes,
    instructions, timestamps and status are left out so editing them keeps
    the cache valid.
    """
    steps = [
        {
            "id": s.id,
            "orderIndex": s.order_index,
            "dependsOn": _dump(list(s.depends_on)),
            "input": _dump(list(s.input)),
            "output": _dump(list(s.output)),
            "from": _dump(s.from_),
            "to": _dump(s.to),
            "stationId": s.station_id,
            "workLocation": _dump(s.work_location),
        }
        for s in build.steps
    ]
    assemblies = [
        {"id": a.id, "groupId": a.group_id, "lineage": _dump(a.lineage)}
        for a in build.assemblies
    ]
    return {
        "steps": sorted(steps, key=lambda d: d["id"]),
        "assemblies": sorted(assemblies, key=lambda d: d["id"]),
    }


def compute_build_source_hash(build: Build) -> str:
    payload = json.dumps(hash_source(build), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:HASH_LENGTH]
