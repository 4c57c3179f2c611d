"""Per-step field requirements, mostly keyed on action family, plus customization hygiene."""

from __future__ import annotations
from numbers import Number
from typing import List, Set

from schema.models import ACTION_FAMILIES, ActionFamily, Build, Step
from validation.helpers import (
    CONTAINER_DETECTION_REGEX,
    collect_valid_customization_value_ids,
    is_non_empty_notes,
)
from validation.registry import RuleContext, finding, rule
from validation.types import Severity, ValidationError


# ---- Step values ------------------------------------------------------------


@rule("H1", Severity.HARD, "step", "action.family is a known family")
def check_action_family(step: Step, ctx: RuleContext) -> List[ValidationError]:
    family = step.family
    if not family:
        return [finding("H1", "H1: action.family is required", step_id=step.id, field_path="action.family")]
    if family not in ACTION_FAMILIES:
        return [
            finding(
                "H1",
                f"H1: invalid action.family: {family}",
                step_id=step.id,
                field_path="action.family",
            )
        ]
    return []


@rule("H3", Severity.HARD, "step", "time.durationSeconds is positive")
def check_duration(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.time is None or step.time.duration_seconds > 0:
        return []
    return [
        finding(
            "H3",
            "H3: time.durationSeconds must be > 0",
            step_id=step.id,
            field_path="time.durationSeconds",
        )
    ]


@rule("H10", Severity.HARD, "step", "quantity.value is positive")
def check_quantity(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.quantity is None or step.quantity.value > 0:
        return []
    return [finding("H10", "H10: quantity.value must be > 0", step_id=step.id, field_path="quantity.value")]


@rule("H4", Severity.HARD, "step", "target names are not containers")
def check_target_not_container(step: Step, ctx: RuleContext) -> List[ValidationError]:
    target = step.target
    if target is None or target.type == "packaging":
        return []
    name = (target.name or "").strip()
    if not name or step.container is not None:
        return []
    if not CONTAINER_DETECTION_REGEX.search(name):
        return []
    return [
        finding(
            "H4",
            "H4: target appears to be a container; use step.container or target.type='packaging'",
            step_id=step.id,
            field_path="target.name",
        )
    ]


@rule("H11", Severity.HARD, "step", "overlay priority is numeric")
def check_overlay_priority(step: Step, ctx: RuleContext) -> List[ValidationError]:
    errors: List[ValidationError] = []
    for overlay in step.overlays:
        p = overlay.priority
        if isinstance(p, bool) or not isinstance(p, Number):
            errors.append(
                finding(
                    "H11",
                    "H11: overlay.priority must be a number",
                    step_id=step.id,
                    field_path="overlays[].priority",
                )
            )
    return errors


@rule("H14", Severity.HARD, "step", "overlay predicate is not empty")
def check_overlay_predicate(step: Step, ctx: RuleContext) -> List[ValidationError]:
    errors: List[ValidationError] = []
    for overlay in step.overlays:
        p = overlay.predicate
        has_any = (
            bool(p.equipment_profile_id)
            or bool(p.customization_value_ids)
            or p.min_customization_count is not None
        )
        if not has_any:
            errors.append(
                finding(
                    "H14",
                    "H14: overlay.predicate must not be empty",
                    step_id=step.id,
                    field_path="overlays[].predicate",
                )
            )
    return errors


# ---- Action-family requirements ---------------------------------------------


@rule("H15", Severity.HARD, "step", "HEAT steps name equipment")
def check_heat_equipment(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.family != ActionFamily.HEAT.value or step.equipment is not None:
        return []
    return [finding("H15", "H15: HEAT step requires equipment", step_id=step.id, field_path="equipment")]


@rule("H22", Severity.HARD, "step", "HEAT steps carry time or notes")
def check_heat_time(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.family != ActionFamily.HEAT.value:
        return []
    if step.time is not None or is_non_empty_notes(step):
        return []
    return [
        finding(
            "H22",
            "H22: HEAT step requires time or non-empty notes",
            step_id=step.id,
            field_path="time|notes",
        )
    ]


@rule("H16", Severity.HARD, "step", "PACKAGING steps name a container or packaging target")
def check_packaging_container(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.family != ActionFamily.PACKAGING.value:
        return []
    if step.container is not None or (step.target is not None and step.target.type == "packaging"):
        return []
    return [
        finding(
            "H16",
            "H16: PACKAGING step requires container or packaging target",
            step_id=step.id,
            field_path="container|target.type",
        )
    ]


@rule("H24", Severity.HARD, "step", "PORTION steps carry quantity or notes")
def check_portion_quantity(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.family != ActionFamily.PORTION.value:
        return []
    if step.quantity is not None or is_non_empty_notes(step):
        return []
    return [
        finding(
            "H24",
            "H24: PORTION step requires quantity or non-empty notes",
            step_id=step.id,
            field_path="quantity|notes",
        )
    ]


@rule("H25", Severity.HARD, "step", "PREP steps carry a technique or notes")
def check_prep_technique(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.family != ActionFamily.PREP.value:
        return []
    if step.technique_id or is_non_empty_notes(step):
        return []
    return [
        finding(
            "H25",
            "H25: PREP step requires techniqueId or non-empty notes",
            step_id=step.id,
            field_path="action.techniqueId|notes",
        )
    ]


@rule("H17", Severity.HARD, "step", "pre-service steps say where the output is stored")
def check_pre_service_destination(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.prep_type != "pre_service":
        return []
    first = step.output[0] if step.output else None
    if first is not None and first.to is not None and first.to.sublocation_type:
        return []
    return [
        finding(
            "H17",
            "H17: pre_service steps require output[].to.sublocation (where the prepped item is stored)",
            step_id=step.id,
            field_path="output[0].to.sublocation",
        )
    ]


@rule("H18", Severity.HARD, "step", "bulk prep implies pre-service")
def check_bulk_prep(step: Step, ctx: RuleContext) -> List[ValidationError]:
    if step.bulk_prep is not True or step.prep_type == "pre_service":
        return []
    return [
        finding(
            "H18",
            "H18: bulkPrep=true requires prepType='pre_service'",
            step_id=step.id,
            field_path="bulkPrep|prepType",
        )
    ]


# ---- Customization, overrides and BOM ---------------------------------------


@rule("H12", Severity.HARD, "build", "customization option ids are unique")
def check_unique_option_ids(build: Build, ctx: RuleContext) -> List[ValidationError]:
    seen: Set[str] = set()
    dupes: Set[str] = set()
    for group in build.customization_groups:
        if group.option_id in seen:
            dupes.add(group.option_id)
        seen.add(group.option_id)
    if not dupes:
        return []
    return [
        finding(
            "H12",
            f"H12: duplicate customizationGroups.optionId: {', '.join(sorted(dupes))}",
            field_path="customizationGroups[].optionId",
        )
    ]


@rule("H21", Severity.HARD, "build", "MANDATORY_CHOICE groups bound their choices")
def check_mandatory_choice_bounds(build: Build, ctx: RuleContext) -> List[ValidationError]:
    errors: List[ValidationError] = []
    for group in build.customization_groups:
        if group.type != "MANDATORY_CHOICE":
            continue
        if group.min_choices is None or group.max_choices is None:
            errors.append(
                finding(
                    "H21",
                    f"H21: MANDATORY_CHOICE group {group.option_id} requires minChoices and maxChoices",
                    field_path="customizationGroups[].minChoices|maxChoices",
                )
            )
    return errors


@rule("H19", Severity.HARD, "build", "step conditions reference known customization values")
def check_condition_value_ids(build: Build, ctx: RuleContext) -> List[ValidationError]:
    valid = collect_valid_customization_value_ids(build)
    errors: List[ValidationError] = []
    for step in build.steps:
        if step.conditions is None:
            continue
        for v in step.conditions.requires_customization_value_ids:
            if v not in valid:
                errors.append(
                    finding(
                        "H19",
                        f"H19: step {step.id} references unknown customization valueId {v}",
                        step_id=step.id,
                        field_path="conditions.requiresCustomizationValueIds",
                    )
                )
    return errors


@rule("H20", Severity.HARD, "build", "overlay predicates reference known customization values")
def check_overlay_value_ids(build: Build, ctx: RuleContext) -> List[ValidationError]:
    valid = collect_valid_customization_value_ids(build)
    errors: List[ValidationError] = []
    for step in build.steps:
        for overlay in step.overlays:
            for v in overlay.predicate.customization_value_ids or []:
                if v not in valid:
                    errors.append(
                        finding(
                            "H20",
                            f"H20: overlay {overlay.id} references unknown customization valueId {v}",
                            step_id=step.id,
                            field_path="overlays[].predicate.customizationValueIds",
                        )
                    )
    return errors


@rule("H13", Severity.HARD, "build", "validation overrides carry a reason")
def check_override_reason(build: Build, ctx: RuleContext) -> List[ValidationError]:
    return [
        finding(
            "H13",
            "H13: validationOverride.reason must be non-empty",
            field_path="validationOverrides[].reason",
        )
        for o in build.validation_overrides
        if not (o.reason or "").strip()
    ]


@rule("H23", Severity.HARD, "build", "required BOM items are covered by step targets")
def check_bom_coverage(build: Build, ctx: RuleContext) -> List[ValidationError]:
    """
    BOM coverage; silent when no BOM context was supplied.

    Items whose type is in the configured required types must be referenced
    by some step's target.bomComponentId.
    """
    if not ctx.bom:
        return []
    referenced = {
        s.target.bom_component_id.strip()
        for s in build.steps
        if s.target is not None and s.target.bom_component_id and s.target.bom_component_id.strip()
    }
    required = {t.lower() for t in ctx.config.bom_coverage_required_types}
    uncovered = [
        item
        for item in ctx.bom
        if item.bom_component_id.strip()
        and item.type.lower() in required
        and item.bom_component_id not in referenced
    ]
    if not uncovered:
        return []
    label = ", ".join((i.name or i.bom_component_id) for i in uncovered[:10])
    return [
        finding(
            "H23",
            f"H23: {len(uncovered)} BOM item(s) uncovered: {label}",
            field_path="bom",
        )
    ]
