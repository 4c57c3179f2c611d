"""Rules that drive derivation of work locations and output destinations."""

from __future__ import annotations
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, Field

from schema.models import ActionFamily


class SublocationRule(BaseModel):
    default: str
    requires_equipment: bool = False
    storage_actions: List[str] = Field(default_factory=list)


ACTION_SUBLOCATION_RULES: Dict[str, SublocationRule] = {
    ActionFamily.HEAT.value: SublocationRule(default="equipment", requires_equipment=True),
    ActionFamily.PREP.value: SublocationRule(
        default="work_surface", storage_actions=["get", "retrieve", "open_pack"]
    ),
    ActionFamily.TRANSFER.value: SublocationRule(default="work_surface"),
    ActionFamily.ASSEMBLE.value: SublocationRule(default="work_surface"),
    ActionFamily.COMBINE.value: SublocationRule(default="work_surface"),
    ActionFamily.PORTION.value: SublocationRule(default="work_surface"),
    ActionFamily.CHECK.value: SublocationRule(default="work_surface"),
    ActionFamily.PACKAGING.value: SublocationRule(default="packaging"),
    ActionFamily.OTHER.value: SublocationRule(default="work_surface"),
}

# Input origins that need no producing step (validation). Ambient shelving
# counts; packaging does not, since packaging inputs come from prior steps.
STORAGE_SUBLOCATIONS: FrozenSet[str] = frozenset(
    {"cold_storage", "cold_rail", "dry_rail", "freezer", "kit_storage", "ambient"}
)

# Transfer origins labelled "retrieve" rather than "pass"/"place". Packaging
# stock is pulled like storage; ambient is not a station sub-location.
RETRIEVAL_SUBLOCATIONS: FrozenSet[str] = frozenset(
    {"cold_storage", "freezer", "kit_storage", "packaging", "cold_rail", "dry_rail"}
)

FINAL_DESTINATION = ("expo", "window_shelf")


def get_default_sublocation_for_action(family: Optional[str]) -> str:
    rule = ACTION_SUBLOCATION_RULES.get(family or "")
    return rule.default if rule else "work_surface"


def action_requires_equipment(family: Optional[str]) -> bool:
    rule = ACTION_SUBLOCATION_RULES.get(family or "")
    return bool(rule and rule.requires_equipment)


def is_storage_retrieval_technique(technique_id: Optional[str]) -> bool:
    if not technique_id:
        return False
    return technique_id in ACTION_SUBLOCATION_RULES[ActionFamily.PREP.value].storage_actions
