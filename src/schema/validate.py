from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional
from pathlib import Path
import json
import pandas as pd
from pydantic import BaseModel, ValidationError

from schema.models import Build

MAX_REPORTED_ISSUES = 100


class SchemaIssue(BaseModel):
    path: str
    message: str
    code: str


def _loc_path(loc: Iterable[Any]) -> str:
    parts: List[str] = []
    for x in loc:
        if x is None:
            continue
        if isinstance(x, int):
            parts.append(f"[{x}]")
        else:
            parts.append(("." if parts else "") + str(x))
    return "".join(parts)


def collect_schema_issues(doc: Dict[str, Any]) -> List[SchemaIssue]:
    """
    Structural check of a raw build document.
    Returns a list of path/message/code issues (empty if the document parses).
    """
    try:
        Build.model_validate(doc)
    except ValidationError as ve:
        return [
            SchemaIssue(
                path=_loc_path(err.get("loc", [])),
                message=err.get("msg", "invalid"),
                code=err.get("type", "invalid"),
            )
            for err in ve.errors()
        ]
    return []


def parse_build(doc: Dict[str, Any]) -> Build:
    """
    Parse a raw (camelCase) build document into a Build.
    Raises ValueError with aggregated, friendly messages if the document is invalid.
    """
    if not isinstance(doc, dict):
        raise ValueError(f"build document must be an object, got {type(doc).__name__}")

    issues = collect_schema_issues(doc)
    if issues:
        label = doc.get("id") or "<unknown>"
        errors = [f"build {label}: field '{i.path}': {i.message} ({i.code})" for i in issues]
        # Limit extremely noisy output
        head = "\n".join(errors[:MAX_REPORTED_ISSUES])
        more = (
            ""
            if len(errors) <= MAX_REPORTED_ISSUES
            else f"\n... and {len(errors) - MAX_REPORTED_ISSUES} more"
        )
        raise ValueError(f"Validation failed for build {label}:\n{head}{more}")

    return Build.model_validate(doc)


def parse_builds(docs: Iterable[Dict[str, Any]]) -> List[Build]:
    return [parse_build(d) for d in docs]


def load_build(path: str | Path) -> Build:
    with open(path, "r", encoding="utf-8") as f:
        doc = json.load(f)
    return parse_build(doc)


def dump_build(build: Build) -> Dict[str, Any]:
    """Wire (camelCase) form of a build, omitting unset optionals."""
    return build.model_dump(by_alias=True, exclude_none=True, mode="json")


def builds_frame(builds: Iterable[Build], status: Optional[str] = None) -> pd.DataFrame:
    """One row per build: id, item, status, version and graph sizes."""
    rows = []
    for b in builds:
        if status is not None and b.status != status:
            continue
        rows.append(
            {
                "build_id": b.id,
                "item_id": b.item_id,
                "name": b.name,
                "status": b.status,
                "version": b.version,
                "step_count": len(b.steps),
                "assembly_count": len(b.assemblies),
                "updated_at": b.updated_at,
            }
        )
    cols = [
        "build_id",
        "item_id",
        "name",
        "status",
        "version",
        "step_count",
        "assembly_count",
        "updated_at",
    ]
    return pd.DataFrame(rows, columns=cols)
