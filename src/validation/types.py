from __future__ import annotations
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Severity(str, Enum):
    """Finding grade. Only HARD blocks publication."""

    HARD = "hard"
    STRONG = "strong"
    SOFT = "soft"
    INFO = "info"

    @property
    def rank(self) -> int:
        return _RANKS[self]


_RANKS = {
    Severity.HARD: 0,
    Severity.STRONG: 1,
    Severity.SOFT: 2,
    Severity.INFO: 3,
}


class _Finding(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class ValidationError(_Finding):
    """One finding. Serializes as {severity, ruleId, message, stepId?, fieldPath?}."""

    severity: Severity
    rule_id: str
    message: str
    step_id: Optional[str] = None
    field_path: Optional[str] = None


class BuildValidationResult(_Finding):
    valid: bool
    hard_errors: List[ValidationError] = Field(default_factory=list)
    warnings: List[ValidationError] = Field(default_factory=list)
    infos: List[ValidationError] = Field(default_factory=list)

    @property
    def findings(self) -> List[ValidationError]:
        return [*self.hard_errors, *self.warnings, *self.infos]

    def rule_ids(self) -> List[str]:
        return [e.rule_id for e in self.findings]
