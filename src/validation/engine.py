from __future__ import annotations
from typing import Dict, List, Optional, Set
import logging

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator

from schema.models import BomItem, Build
from kitchen_config.validation import DEFAULT_VALIDATION_CONFIG, ValidationConfig
from validation.helpers import sort_errors, step_order_index_map
from validation.registry import RULES, RuleContext, RuleSpec, get_fix_hint

# Importing the rule modules registers their checks
from validation import structural  # noqa: F401
from validation import field_presence  # noqa: F401
from validation import composition  # noqa: F401
from validation import material_flow  # noqa: F401
from validation import workflow_patterns  # noqa: F401
from validation import compatibility  # noqa: F401
from validation.types import BuildValidationResult, Severity, ValidationError

logger = logging.getLogger(__name__)


class ValidationOptions(BaseModel):
    """Per-call knobs; the defaults reproduce the standard rule set."""

    model_config = ConfigDict(frozen=True)

    disabled_rules: Set[str] = Field(default_factory=set)
    # Opt-in rules (registered with default_enabled=False) to run as well
    enabled_rules: Set[str] = Field(default_factory=set)
    bom: List[BomItem] = Field(default_factory=list)
    config: ValidationConfig = DEFAULT_VALIDATION_CONFIG

    @field_validator("disabled_rules", "enabled_rules")
    @classmethod
    def _known_rules(cls, v):
        unknown = sorted(r for r in v if r not in RULES)
        if unknown:
            raise ValueError(f"unknown rule id(s): {', '.join(unknown)}")
        return v


def active_rules(options: ValidationOptions) -> List[RuleSpec]:
    return [
        spec
        for rid, spec in RULES.items()
        if rid not in options.disabled_rules
        and (spec.default_enabled or rid in options.enabled_rules)
    ]


def validate_build(build: Build, options: Optional[ValidationOptions] = None) -> BuildValidationResult:
    """
    Run every active rule over a build.

    Rules:
    - Findings are partitioned by their own severity: hard -> hard_errors,
      strong/soft -> warnings, info -> infos.
    - Each bucket is sorted by (severity rank, rule id, step order, step id,
      field path, message).
    - valid is True exactly when there are no hard errors.

    Returns:
        BuildValidationResult
    """
    options = options or ValidationOptions()
    ctx = RuleContext(build=build, config=options.config, bom=list(options.bom))

    collected: List[ValidationError] = []
    for spec in active_rules(options):
        collected.extend(spec.run(ctx))

    hard = [e for e in collected if e.severity is Severity.HARD]
    infos = [e for e in collected if e.severity is Severity.INFO]
    warnings = [e for e in collected if e.severity in (Severity.STRONG, Severity.SOFT)]

    order = step_order_index_map(build)
    logger.debug(
        "validated build %s: %d hard, %d warnings, %d infos",
        build.id,
        len(hard),
        len(warnings),
        len(infos),
    )
    return BuildValidationResult(
        valid=not hard,
        hard_errors=sort_errors(hard, order),
        warnings=sort_errors(warnings, order),
        infos=sort_errors(infos, order),
    )


def validate_builds(
    builds: List[Build], options: Optional[ValidationOptions] = None
) -> Dict[str, BuildValidationResult]:
    options = options or ValidationOptions()
    return {b.id: validate_build(b, options) for b in builds}


# ---- Reporting --------------------------------------------------------------


def _format_finding(e: ValidationError) -> str:
    where = []
    if e.step_id:
        where.append(f"step={e.step_id}")
    if e.field_path:
        where.append(f"field={e.field_path}")
    suffix = f" ({', '.join(where)})" if where else ""
    line = f"  [{e.severity.value}] {e.rule_id}: {e.message}{suffix}"
    hint = get_fix_hint(e.rule_id)
    if hint:
        line += f"\n      fix: {hint}"
    return line


def format_validation_result(result: BuildValidationResult) -> List[str]:
    """Text lines: a status line, then each non-empty group with its findings."""
    status = "VALID" if result.valid else "INVALID"
    lines = [
        f"{status}: {len(result.hard_errors)} hard error(s), "
        f"{len(result.warnings)} warning(s), {len(result.infos)} info(s)"
    ]
    for title, group in (
        ("Hard errors", result.hard_errors),
        ("Warnings", result.warnings),
        ("Info", result.infos),
    ):
        if not group:
            continue
        lines.append(f"{title}:")
        lines.extend(_format_finding(e) for e in group)
    return lines


def validation_frame(result: BuildValidationResult) -> pd.DataFrame:
    """One row per finding, in report order (hard, warnings, infos)."""
    cols = ["severity", "rule_id", "step_id", "field_path", "message", "fix_hint"]
    rows = [
        {
            "severity": e.severity.value,
            "rule_id": e.rule_id,
            "step_id": e.step_id,
            "field_path": e.field_path,
            "message": e.message,
            "fix_hint": get_fix_hint(e.rule_id),
        }
        for e in result.findings
    ]
    return pd.DataFrame(rows, columns=cols)
