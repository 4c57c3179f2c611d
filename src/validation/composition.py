"""Cross-build composition: requiresBuilds hygiene and assembly reference resolution."""

from __future__ import annotations
from typing import List, Set

from schema.models import Build
from validation.helpers import iter_refs
from validation.registry import RuleContext, finding, rule
from validation.types import Severity, ValidationError


@rule("C1", Severity.HARD, "build", "requiresBuilds has no self-dependency or duplicates")
def check_requires_builds(build: Build, ctx: RuleContext) -> List[ValidationError]:
    errors: List[ValidationError] = []
    seen: Set[str] = set()
    dupes: Set[str] = set()
    for ref in build.requires_builds:
        if ref.item_id == build.item_id:
            errors.append(
                finding(
                    "C1",
                    f"requiresBuilds: self-dependency is not allowed (itemId={build.item_id})",
                    field_path="requiresBuilds[].itemId",
                )
            )
        if ref.item_id in seen:
            dupes.add(ref.item_id)
        seen.add(ref.item_id)
    for d in sorted(dupes):
        errors.append(
            finding(
                "C1",
                f"requiresBuilds: duplicate itemId {d}",
                field_path="requiresBuilds[].itemId",
            )
        )
    return errors


@rule("C2", Severity.HARD, "build", "external_build refs are declared in requiresBuilds")
def check_external_refs_declared(build: Build, ctx: RuleContext) -> List[ValidationError]:
    declared = {r.item_id for r in build.requires_builds}
    errors: List[ValidationError] = []
    for step in ctx.ordered_steps:
        for kind, ref in iter_refs(step):
            if ref.source.type != "external_build" or ref.source.item_id in declared:
                continue
            errors.append(
                finding(
                    "C2",
                    "external_build reference must be declared in build.requiresBuilds "
                    f"(missing itemId={ref.source.item_id})",
                    step_id=step.id,
                    field_path=f"{kind}[].source.itemId",
                )
            )
    return errors


@rule("C3", Severity.HARD, "build", "in_build refs resolve to declared assemblies")
def check_in_build_refs_resolve(build: Build, ctx: RuleContext) -> List[ValidationError]:
    if not build.assemblies:
        return []
    ids = {a.id for a in build.assemblies}
    errors: List[ValidationError] = []
    for step in ctx.ordered_steps:
        for kind, ref in iter_refs(step):
            if not ref.in_build or ref.assembly_id in ids:
                continue
            errors.append(
                finding(
                    "C3",
                    f"in_build assembly reference does not resolve (assemblyId={ref.assembly_id})",
                    step_id=step.id,
                    field_path=f"{kind}[].source.assemblyId",
                )
            )
    return errors


@rule("S6", Severity.STRONG, "build", "primary output assembly is set and resolves")
def check_primary_output(build: Build, ctx: RuleContext) -> List[ValidationError]:
    if not build.assemblies:
        return []
    primary = build.primary_output_assembly_id
    if not primary:
        reason = "primaryOutputAssemblyId missing"
    elif primary not in {a.id for a in build.assemblies}:
        reason = "primaryOutputAssemblyId does not resolve"
    else:
        return []
    return [
        finding(
            "S6",
            f"Primary output assembly should be set when using assemblies ({reason})",
            field_path="primaryOutputAssemblyId",
        )
    ]
