"""Rule registry: every check is a pure function registered under (id, severity, scope)."""

from __future__ import annotations
from dataclasses import dataclass, field
from functools import cached_property
from typing import Callable, Dict, List, Literal, Optional

from schema.models import BomItem, Build, Step, ordered_steps
from kitchen_config.validation import ValidationConfig
from validation.types import Severity, ValidationError

RuleScope = Literal["build", "step"]


@dataclass
class RuleContext:
    """Everything a rule may look at besides its target."""

    build: Build
    config: ValidationConfig
    bom: List[BomItem] = field(default_factory=list)

    @cached_property
    def ordered_steps(self) -> List[Step]:
        return ordered_steps(self.build.steps)


BuildCheck = Callable[[Build, RuleContext], List[ValidationError]]
StepCheck = Callable[[Step, RuleContext], List[ValidationError]]


@dataclass(frozen=True)
class RuleSpec:
    rule_id: str
    severity: Severity
    scope: RuleScope
    description: str
    check: Callable[..., List[ValidationError]]
    fix_hint: Optional[str] = None
    # Opt-in rules run only when named in ValidationOptions.enabled_rules
    default_enabled: bool = True

    def run(self, ctx: RuleContext) -> List[ValidationError]:
        if self.scope == "build":
            return list(self.check(ctx.build, ctx))
        out: List[ValidationError] = []
        for step in ctx.ordered_steps:
            out.extend(self.check(step, ctx))
        return out


# Registration order is the collection order used by the engine
RULES: Dict[str, RuleSpec] = {}


FIX_HINTS: Dict[str, str] = {
    "H1": "Set action.family to a valid enum (PREP, HEAT, TRANSFER, ASSEMBLE, PORTION, PACKAGING, etc.)",
    "H2": "orderIndex is derived for UX; set unique values only if you want a specific display order",
    "H3": "Set time.durationSeconds > 0",
    "H4": "Move container concepts out of target.name (containers are not targets)",
    "H6": "Add at least 1 step before publishing",
    "H7": "Ensure all step.id values are unique",
    "H8": "Fix dependsOn references to point to existing step IDs",
    "H9": "Remove circular dependencies to form a valid DAG",
    "H10": "Set quantity.value > 0",
    "H11": "Set overlay.priority to a number",
    "H12": "Ensure customizationGroups[].optionId is unique",
    "H13": "Add validationOverride.reason (non-empty string)",
    "H14": "Add at least 1 predicate to overlay",
    "H15": "Add equipment.applianceId to HEAT step",
    "H16": "Add container or packaging target to PACKAGING step",
    "H17": "Add to.sublocation for pre_service step (where prepped item is stored)",
    "H18": "Set prepType='pre_service' when bulkPrep=true",
    "H19": "Fix step conditions to reference valid customization valueIds",
    "H20": "Fix overlay predicates to reference valid customization valueIds",
    "H21": "Add minChoices and maxChoices to MANDATORY_CHOICE groups",
    "H22": "Add time.durationSeconds or notes to HEAT step",
    "H23": "Reference every consumable and packaged_good BOM item from some step target",
    "H24": "Add quantity or notes to PORTION step",
    "H25": "Add action.techniqueId or notes to PREP step",
    "H26": "Add dependsOn to connect steps (most steps should have dependencies)",
    "H29": "Add input[].role with exactly one 'base' for merge steps (2+ inputs)",
    "H30": "Add assembly.lineage.evolvesFrom for 1:1 transformations",
    "H31": "Set stationId on every input[].from and output[].to",
    "H32": "Use a workLocation that exists at this station",
    "H33": "Use a techniqueId from the controlled vocabulary that matches the action family",
    "H35": "Use equipment available at this station",
    "H36": "Add stationId when step.workLocation is ambiguous (shared across stations)",
    "H37": "Add explicit stationId (equipment is shared across multiple stations)",
    "H38": "Remove authored TRANSFER steps; model movement via material flow and locations instead",
    "H40": "Set input[].from and output[].to with sublocation for each assembly ref (stationId only when ambiguous)",
    "H41": "Add at least one output assembly ref for the step",
    "H42": "Set stationId on any input/output location that could map to multiple stations",
    "H43": "Ensure input[].from matches the producer output location before publishing",
    "H44": "Give each step its own output assembly version",
    "H46": "Set step.workLocation (and equipmentId for equipment)",
    "C1": "Ensure requiresBuilds entries are unique and not self-referential",
    "C2": "Declare external_build input in requiresBuilds array",
    "C3": "Ensure in_build assembly refs point to existing assemblies",
    "S6": "Set primaryOutputAssemblyId to the id of the finished assembly",
    "S15": "Add a sublocation next to every stationId on assembly refs",
    "S16a": "Reorder steps so each kitchen area is visited once per track",
    "S16b": "Reorder steps so each station is visited once within its area",
    "S17": "Review the derived workLocation and set it explicitly if wrong",
    "S18": "Review the derived output destination and set it explicitly if wrong",
    "S20": "Add input[] refs or confirm the dependency is work-only",
    "S21": "Rename step-based assembly IDs to descriptive names (e.g., pizza_baked_v1)",
    "S22": "Ensure input[].from aligns with the producer output location or explicitly model movement",
    "S23": "Set input.from.stationId to the step's own station so a transfer is derived",
    "S45": "Add output[].from naming the ingredient source",
}


def rule(
    rule_id: str,
    severity: Severity,
    scope: RuleScope,
    description: str,
    default_enabled: bool = True,
):
    """Register a check. The decorated function is returned unchanged so it stays directly testable."""

    def _register(fn):
        if rule_id in RULES:
            raise ValueError(f"duplicate rule id: {rule_id}")
        RULES[rule_id] = RuleSpec(
            rule_id=rule_id,
            severity=severity,
            scope=scope,
            description=description,
            check=fn,
            fix_hint=FIX_HINTS.get(rule_id),
            default_enabled=default_enabled,
        )
        return fn

    return _register


def get_rule(rule_id: str) -> RuleSpec:
    try:
        return RULES[rule_id]
    except KeyError:
        raise ValueError(f"unknown rule id: {rule_id}") from None


def get_fix_hint(rule_id: str) -> Optional[str]:
    return FIX_HINTS.get(rule_id)


def finding(
    rule_id: str,
    message: str,
    severity: Optional[Severity] = None,
    step_id: Optional[str] = None,
    field_path: Optional[str] = None,
) -> ValidationError:
    """Build a finding; severity defaults to the registered rule's severity."""
    return ValidationError(
        severity=severity if severity is not None else RULES[rule_id].severity,
        rule_id=rule_id,
        message=message,
        step_id=step_id,
        field_path=field_path,
    )
