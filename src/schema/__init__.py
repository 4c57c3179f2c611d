"""Build graph model: steps, material-flow refs, assemblies and locations."""

from .models import (  # noqa: F401
    ActionFamily,
    ACTION_FAMILIES,
    Assembly,
    AssemblyLineage,
    AssemblyRef,
    AssemblySource,
    BomItem,
    Build,
    BuildRef,
    CustomizationGroup,
    DependencyRef,
    FieldProvenance,
    LocationRef,
    Step,
    StepAction,
    StepContainer,
    StepEquipment,
    StepProvenance,
    StepQuantity,
    StepTarget,
    StepTime,
    Sublocation,
    dependency_step_id,
    order_key,
    ordered_steps,
)
from .derived import DerivedBuildData, DerivedTransferStep  # noqa: F401

__all__ = [
    "ActionFamily",
    "ACTION_FAMILIES",
    "Assembly",
    "AssemblyLineage",
    "AssemblyRef",
    "AssemblySource",
    "BomItem",
    "Build",
    "BuildRef",
    "CustomizationGroup",
    "DependencyRef",
    "FieldProvenance",
    "LocationRef",
    "Step",
    "StepAction",
    "StepContainer",
    "StepEquipment",
    "StepProvenance",
    "StepQuantity",
    "StepTarget",
    "StepTime",
    "Sublocation",
    "dependency_step_id",
    "order_key",
    "ordered_steps",
    "DerivedBuildData",
    "DerivedTransferStep",
]
