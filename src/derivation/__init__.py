"""Derivation engine: fills in fields authors left implicit."""

from .derive import (  # noqa: F401
    DerivedValue,
    derive_all_material_flow,
    derive_output_assembly_location,
    derive_step_work_location,
    is_likely_derived_work_location,
)
from .flow import (  # noqa: F401
    compute_assembly_components,
    derive_dependencies,
    resolve_latest_in_group,
)
from .normalize import derive_station_id, normalize_build  # noqa: F401

__all__ = [
    "DerivedValue",
    "derive_all_material_flow",
    "derive_output_assembly_location",
    "derive_step_work_location",
    "is_likely_derived_work_location",
    "compute_assembly_components",
    "derive_dependencies",
    "resolve_latest_in_group",
    "derive_station_id",
    "normalize_build",
]
