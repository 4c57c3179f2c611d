from __future__ import annotations
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ValidationConfig(BaseModel):
    """Tunables consumed by the validation rules."""

    model_config = ConfigDict(frozen=True)

    # Fraction of steps that must declare dependsOn before H26 stays quiet
    graph_connectivity_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    # BOM item types that must be referenced by some step target
    bom_coverage_required_types: List[str] = Field(
        default_factory=lambda: ["consumable", "packaged_good"]
    )


DEFAULT_VALIDATION_CONFIG = ValidationConfig()
