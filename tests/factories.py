"""Small builders for build documents (camelCase wire form) used across the tests."""

from typing import Any, Dict, List, Optional

from schema.models import Build
from schema.validate import parse_build


def loc(station: Optional[str], sub: Optional[str], equipment: Optional[str] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if station:
        out["stationId"] = station
    if sub:
        out["sublocation"] = {"type": sub}
        if equipment:
            out["sublocation"]["equipmentId"] = equipment
    return out


def ref(assembly_id: str, **extra) -> Dict[str, Any]:
    doc = {"source": {"type": "in_build", "assemblyId": assembly_id}}
    doc.update(extra)
    return doc


def step(step_id: str, family: str = "PREP", order: Optional[int] = None, **fields) -> Dict[str, Any]:
    """A bare step document; keyword fields use their camelCase wire names."""
    doc: Dict[str, Any] = {"id": step_id, "action": {"family": family}}
    if order is not None:
        doc["orderIndex"] = order
    technique = fields.pop("techniqueId", None)
    if technique:
        doc["action"]["techniqueId"] = technique
    doc.update(fields)
    return doc


def build_doc(steps: List[Dict[str, Any]], build_id: str = "b1", **fields) -> Dict[str, Any]:
    doc: Dict[str, Any] = {
        "id": build_id,
        "itemId": f"item-{build_id}",
        "version": 1,
        "status": "draft",
        "steps": steps,
        "createdAt": "2025-01-01T00:00:00Z",
        "updatedAt": "2025-01-01T00:00:00Z",
    }
    doc.update(fields)
    return doc


def make_build(steps: List[Dict[str, Any]], build_id: str = "b1", **fields) -> Build:
    return parse_build(build_doc(steps, build_id, **fields))


def tortilla_steps() -> List[Dict[str, Any]]:
    """Retrieve a tortilla, toast it 30s, wrap it; every location explicit, all at the toaster station."""
    return [
        step(
            "s1",
            "PREP",
            order=1,
            techniqueId="open_pack",
            stationId="toaster",
            workLocation={"type": "cold_storage"},
            output=[ref("tortilla", to=loc("toaster", "work_surface"))],
        ),
        step(
            "s2",
            "HEAT",
            order=2,
            techniqueId="toast",
            stationId="toaster",
            equipment={"applianceId": "toaster"},
            time={"durationSeconds": 30, "isActive": False},
            workLocation={"type": "equipment", "equipmentId": "toaster"},
            dependsOn=["s1"],
            input=[ref("tortilla", **{"from": loc("toaster", "work_surface")})],
            output=[ref("toasted_tortilla", to=loc("toaster", "work_surface"))],
        ),
        step(
            "s3",
            "PACKAGING",
            order=3,
            techniqueId="wrap",
            stationId="toaster",
            container={"type": "wrapper", "name": "foil wrapper"},
            workLocation={"type": "packaging"},
            dependsOn=["s2"],
            input=[ref("toasted_tortilla", **{"from": loc("toaster", "work_surface")})],
            output=[ref("wrapped_tortilla", to=loc("expo", "window_shelf"))],
        ),
    ]


def tortilla_build(build_id: str = "tortilla", **fields) -> Build:
    return make_build(tortilla_steps(), build_id, **fields)
