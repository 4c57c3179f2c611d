from __future__ import annotations
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union
from datetime import datetime, timezone
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from dateutil import parser as dateparser


def _parse_utc(ts: str | datetime) -> datetime:
    if isinstance(ts, datetime):
        dt = ts
    else:
        dt = dateparser.parse(str(ts))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    return dt.replace(tzinfo=timezone.utc)


class _Node(BaseModel):
    """Base for every build-graph entity.

    Documents use camelCase keys; attributes are snake_case. Instances are
    frozen, so transforms produce new values via ``model_copy(update=...)``.
    """

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class ActionFamily(str, Enum):
    HEAT = "HEAT"
    PREP = "PREP"
    TRANSFER = "TRANSFER"
    COMBINE = "COMBINE"
    ASSEMBLE = "ASSEMBLE"
    PORTION = "PORTION"
    CHECK = "CHECK"
    PACKAGING = "PACKAGING"
    OTHER = "OTHER"


ACTION_FAMILIES = tuple(f.value for f in ActionFamily)

BuildStatus = Literal["draft", "published", "archived"]


# ---- Locations --------------------------------------------------------------


class Sublocation(_Node):
    type: str = Field(min_length=1)
    equipment_id: Optional[str] = None

    @field_validator("type", "equipment_id", mode="before")
    @classmethod
    def _strip(cls, v):
        if v is None:
            return None
        s = str(v).strip()
        return s or None


class LocationRef(_Node):
    station_id: Optional[str] = None
    sublocation: Optional[Sublocation] = None

    @property
    def sublocation_type(self) -> Optional[str]:
        return self.sublocation.type if self.sublocation else None

    @property
    def equipment_id(self) -> Optional[str]:
        return self.sublocation.equipment_id if self.sublocation else None

    def is_meaningful(self) -> bool:
        return bool(self.station_id or self.sublocation_type)


# ---- Assemblies and material flow -------------------------------------------


class StepQuantity(_Node):
    value: float
    unit: str = ""
    kind: Optional[Literal["absolute", "multiplier"]] = None


class AssemblySource(_Node):
    type: Literal["in_build", "external_build"] = "in_build"
    assembly_id: Optional[str] = None
    item_id: Optional[str] = None
    version: Optional[Union[int, str]] = None


class AssemblyRef(_Node):
    source: AssemblySource
    quantity: Optional[StepQuantity] = None
    notes: Optional[str] = None
    from_: Optional[LocationRef] = Field(default=None, alias="from")
    to: Optional[LocationRef] = None
    on_assembly: Optional[str] = None
    role: Optional[Literal["base", "added"]] = None

    @property
    def assembly_id(self) -> Optional[str]:
        return self.source.assembly_id

    @property
    def in_build(self) -> bool:
        return self.source.type == "in_build"


class AssemblyLineage(_Node):
    evolves_from: Optional[str] = None


class Assembly(_Node):
    id: str = Field(min_length=1)
    name: Optional[str] = None
    type: Optional[str] = None
    bom_usage_id: Optional[str] = None
    bom_component_id: Optional[str] = None
    notes: Optional[str] = None
    group_id: Optional[str] = None
    sub_assemblies: List[str] = Field(default_factory=list)
    lineage: Optional[AssemblyLineage] = None

    @property
    def evolves_from(self) -> Optional[str]:
        return self.lineage.evolves_from if self.lineage else None


# ---- Step parts -------------------------------------------------------------


class StepAction(_Node):
    family: Optional[str] = None
    technique_id: Optional[str] = None
    detail_id: Optional[str] = None
    display_text_override: Optional[str] = None


class StepTarget(_Node):
    type: Literal["bom_usage", "bom_component", "packaging", "free_text", "unknown"] = (
        "unknown"
    )
    bom_usage_id: Optional[str] = None
    bom_component_id: Optional[str] = None
    name: Optional[str] = None


class StepEquipment(_Node):
    appliance_id: str = Field(min_length=1)
    preset_id: Optional[str] = None


class StepTime(_Node):
    duration_seconds: float
    is_active: bool = False


class StepContainer(_Node):
    type: Optional[str] = None
    name: Optional[str] = None
    size: Optional[str] = None


class FieldProvenance(_Node):
    type: Literal["manual", "inherited", "overlay", "inferred", "legacy_import"]
    source_id: Optional[str] = None
    confidence: Optional[Literal["high", "medium", "low"]] = None


class StepProvenance(_Node):
    target: Optional[FieldProvenance] = None
    station_id: Optional[FieldProvenance] = None
    tool_id: Optional[FieldProvenance] = None
    equipment: Optional[FieldProvenance] = None
    time: Optional[FieldProvenance] = None
    container: Optional[FieldProvenance] = None
    cooking_phase: Optional[FieldProvenance] = None
    exclude: Optional[FieldProvenance] = None
    work_location: Optional[FieldProvenance] = None
    from_: Optional[FieldProvenance] = Field(default=None, alias="from")
    to: Optional[FieldProvenance] = None


class StepCondition(_Node):
    requires_equipment_profile_ids: List[str] = Field(default_factory=list)
    requires_customization_value_ids: List[str] = Field(default_factory=list)
    requires_restaurant_ids: List[str] = Field(default_factory=list)


class OverlayPredicate(_Node):
    equipment_profile_id: Optional[str] = None
    customization_value_ids: Optional[List[str]] = None
    min_customization_count: Optional[int] = None


class StepOverlay(_Node):
    id: str
    predicate: OverlayPredicate = Field(default_factory=OverlayPredicate)
    overrides: Dict[str, Any] = Field(default_factory=dict)
    # Left untyped so non-numeric priorities surface as findings, not parse errors
    priority: Any = 0


class DependencyCondition(_Node):
    requires_customization_value_ids: List[str] = Field(default_factory=list)


class DependencyRef(_Node):
    step_id: str
    condition: Optional[DependencyCondition] = None


# ---- Step -------------------------------------------------------------------


class Step(_Node):
    id: str = Field(min_length=1)
    order_index: Optional[int] = None
    action: StepAction = Field(default_factory=StepAction)

    instruction: Optional[str] = None
    track_id: Optional[str] = None
    operation_id: Optional[str] = None
    target: Optional[StepTarget] = None
    grouping_id: Optional[str] = None
    station_id: Optional[str] = None
    tool_id: Optional[str] = None
    equipment: Optional[StepEquipment] = None
    time: Optional[StepTime] = None
    cooking_phase: Optional[str] = None
    container: Optional[StepContainer] = None
    work_location: Optional[Sublocation] = None
    exclude: Optional[bool] = None
    prep_type: Optional[Literal["pre_service", "order_execution"]] = None
    bulk_prep: Optional[bool] = None
    quantity: Optional[StepQuantity] = None
    notes: Optional[str] = None
    provenance: Optional[StepProvenance] = None
    conditions: Optional[StepCondition] = None
    overlays: List[StepOverlay] = Field(default_factory=list)
    depends_on: List[Union[str, DependencyRef]] = Field(default_factory=list)
    input: List[AssemblyRef] = Field(default_factory=list)
    output: List[AssemblyRef] = Field(default_factory=list)

    # Legacy step-level locations
    from_: Optional[LocationRef] = Field(default=None, alias="from")
    to: Optional[LocationRef] = None

    @field_validator("id", mode="before")
    @classmethod
    def _strip_id(cls, v):
        return str(v).strip()

    @field_validator("station_id", "grouping_id", "track_id", mode="before")
    @classmethod
    def _strip(cls, v):
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @property
    def family(self) -> Optional[str]:
        return self.action.family

    @property
    def technique_id(self) -> Optional[str]:
        return self.action.technique_id

    @property
    def appliance_id(self) -> Optional[str]:
        return self.equipment.appliance_id if self.equipment else None

    @property
    def dependency_ids(self) -> List[str]:
        return [dependency_step_id(d) for d in self.depends_on]


# ---- Build-level ------------------------------------------------------------


class BuildRef(_Node):
    item_id: str = Field(min_length=1)
    version: Optional[Union[int, str]] = None
    role: Optional[str] = None
    notes: Optional[str] = None


class CustomizationGroup(_Node):
    option_id: str
    type: str
    min_choices: Optional[int] = None
    max_choices: Optional[int] = None
    value_ids: List[str] = Field(default_factory=list)
    display_name: Optional[str] = None


class ValidationOverride(_Node):
    id: str
    rule_id: str
    severity: Literal["hard", "strong", "soft"]
    step_id: Optional[str] = None
    field_path: Optional[str] = None
    reason: str = ""
    created_at: Optional[str] = None
    approved: Optional[bool] = None


class BomItem(_Node):
    """One entry of the optional bill-of-materials context used for coverage checks."""

    bom_component_id: str = ""
    type: str = ""
    name: Optional[str] = None


class Build(_Node):
    id: str = Field(min_length=1)
    item_id: Optional[str] = None
    version: Optional[int] = None
    status: BuildStatus = "draft"
    steps: List[Step] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    name: Optional[str] = None
    menu_item_id: Optional[str] = None
    requires_builds: List[BuildRef] = Field(default_factory=list)
    assemblies: List[Assembly] = Field(default_factory=list)
    primary_output_assembly_id: Optional[str] = None
    customization_groups: List[CustomizationGroup] = Field(default_factory=list)
    validation_overrides: List[ValidationOverride] = Field(default_factory=list)
    author_id: Optional[str] = None

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _ts(cls, v):
        if v is None or v == "":
            return None
        return _parse_utc(v)

    def step_by_id(self) -> Dict[str, Step]:
        return {s.id: s for s in self.steps}

    def assembly_by_id(self) -> Dict[str, Assembly]:
        return {a.id: a for a in self.assemblies}


def dependency_step_id(ref: Union[str, DependencyRef]) -> str:
    return ref if isinstance(ref, str) else ref.step_id


def order_key(step: Step) -> tuple:
    """Canonical (orderIndex, trackId, id) ordering used by rules and scoring."""
    return (step.order_index or 0, step.track_id or "", step.id)


def ordered_steps(steps: List[Step]) -> List[Step]:
    return sorted(steps, key=order_key)
