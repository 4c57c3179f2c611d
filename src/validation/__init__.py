"""Build validation: a registry of graded rules and the engine that runs them."""

from .types import BuildValidationResult, Severity, ValidationError  # noqa: F401
from .registry import RULES, RuleContext, RuleSpec, get_fix_hint, get_rule  # noqa: F401
from .engine import (  # noqa: F401
    ValidationOptions,
    active_rules,
    format_validation_result,
    validate_build,
    validate_builds,
    validation_frame,
)

__all__ = [
    "BuildValidationResult",
    "Severity",
    "ValidationError",
    "RULES",
    "RuleContext",
    "RuleSpec",
    "get_fix_hint",
    "get_rule",
    "ValidationOptions",
    "active_rules",
    "format_validation_result",
    "validate_build",
    "validate_builds",
    "validation_frame",
]
