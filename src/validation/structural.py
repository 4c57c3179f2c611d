"""Graph-shape rules: step identity, dependency references, acyclicity, connectivity."""

from __future__ import annotations
from typing import Dict, List, Set

from schema.models import Build, dependency_step_id
from validation.helpers import canonicalize_cycle_path
from validation.registry import RuleContext, finding, rule
from validation.types import Severity, ValidationError


@rule("H6", Severity.HARD, "build", "published builds have at least one step")
def check_published_has_steps(build: Build, ctx: RuleContext) -> List[ValidationError]:
    if build.status != "published" or build.steps:
        return []
    return [finding("H6", "H6: published build must contain at least 1 step", field_path="steps")]


@rule("H7", Severity.HARD, "build", "step ids are unique")
def check_unique_step_ids(build: Build, ctx: RuleContext) -> List[ValidationError]:
    seen: Set[str] = set()
    dupes: Set[str] = set()
    for step in build.steps:
        if step.id in seen:
            dupes.add(step.id)
        seen.add(step.id)
    if not dupes:
        return []
    return [
        finding(
            "H7",
            f"H7: duplicate step.id values: {', '.join(sorted(dupes))}",
            field_path="steps[].id",
        )
    ]


@rule("H8", Severity.HARD, "build", "dependsOn references resolve")
def check_dependency_refs(build: Build, ctx: RuleContext) -> List[ValidationError]:
    ids = {s.id for s in build.steps}
    errors: List[ValidationError] = []
    for step in build.steps:
        for dep in step.dependency_ids:
            if dep not in ids:
                errors.append(
                    finding(
                        "H8",
                        f"H8: step {step.id} dependsOn missing stepId {dep}",
                        step_id=step.id,
                        field_path="dependsOn",
                    )
                )
    return errors


@rule("H9", Severity.HARD, "build", "dependency graph is acyclic")
def check_acyclic(build: Build, ctx: RuleContext) -> List[ValidationError]:
    """
    DFS over dependsOn edges, starting from steps in canonical order.

    Rules:
    - A back-edge to a node on the recursion stack closes a cycle.
    - Each cycle is rotated to start at its smallest id and reported once,
      so the result does not depend on traversal order.
    - Missing references are skipped (H8 reports them).
    """
    by_id = build.step_by_id()
    # states: 0 = UNVISITED, 1 = VISITING, 2 = VISITED
    state: Dict[str, int] = {}
    stack: List[str] = []
    seen_cycles: Set[str] = set()
    errors: List[ValidationError] = []

    def dfs(sid: str) -> None:
        if state.get(sid, 0) != 0:
            return
        state[sid] = 1
        stack.append(sid)

        step = by_id.get(sid)
        for ref in step.depends_on if step else []:
            dep = dependency_step_id(ref)
            if dep not in by_id:
                continue
            dep_state = state.get(dep, 0)
            if dep_state == 0:
                dfs(dep)
            elif dep_state == 1:
                cycle = stack[stack.index(dep):] if dep in stack else [dep]
                canonical = canonicalize_cycle_path(cycle)
                key = "->".join(canonical)
                if key in seen_cycles:
                    continue
                seen_cycles.add(key)
                path = " -> ".join(canonical + [canonical[0]])
                errors.append(
                    finding(
                        "H9",
                        f"H9: cycle detected: {path}",
                        step_id=canonical[0],
                        field_path="dependsOn",
                    )
                )

        stack.pop()
        state[sid] = 2

    for step in ctx.ordered_steps:
        dfs(step.id)
    return errors


@rule("H26", Severity.SOFT, "build", "most steps declare a dependency")
def check_graph_connectivity(build: Build, ctx: RuleContext) -> List[ValidationError]:
    steps = ctx.ordered_steps
    if len(steps) <= 1:
        return []
    dependent = sum(1 for s in steps if s.depends_on)
    ratio = dependent / len(steps)
    if ratio >= ctx.config.graph_connectivity_threshold:
        return []
    return [
        finding(
            "H26",
            f"H26: graph appears under-specified (only {ratio * 100:.0f}% of steps have dependsOn). "
            "Confirm which steps truly can start immediately.",
            field_path="steps[].dependsOn",
        )
    ]


@rule("H2", Severity.SOFT, "build", "orderIndex set and unique within a track")
def check_order_index(build: Build, ctx: RuleContext) -> List[ValidationError]:
    seen_by_scope: Dict[str, Set[int]] = {}
    errors: List[ValidationError] = []
    for step in build.steps:
        if step.order_index is None:
            errors.append(
                finding(
                    "H2",
                    f"H2: step {step.id} missing orderIndex (orderIndex is derived for UX; set only if needed)",
                    step_id=step.id,
                    field_path="orderIndex",
                )
            )
            continue
        scope = step.track_id or "__default__"
        seen = seen_by_scope.setdefault(scope, set())
        if step.order_index in seen:
            errors.append(
                finding(
                    "H2",
                    f"H2: duplicate orderIndex {step.order_index} in scope {scope} "
                    "(orderIndex is derived for UX; adjust only if needed)",
                    step_id=step.id,
                    field_path="orderIndex",
                )
            )
            continue
        seen.add(step.order_index)
    return errors
