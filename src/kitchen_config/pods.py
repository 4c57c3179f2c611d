"""Site layout: which pod (physical work area) hosts each station or appliance.

The transfer deriver only needs a site-assignment callable
``(equipment_id, station_id) -> pod_id | None``; ``make_site_assigner``
builds one from a ``SiteLayout``.
"""

from __future__ import annotations
from pathlib import Path
from typing import Callable, Dict, List, Literal, Optional
import logging

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

PodType = Literal["HOT", "COLD", "HYBRID", "CLAMSHELL", "PIZZA", "EXPO", "VENDING"]

SiteAssigner = Callable[[Optional[str], Optional[str]], Optional[str]]


class _LayoutModel(BaseModel):
    model_config = ConfigDict(
        extra="ignore", frozen=True, populate_by_name=True, alias_generator=to_camel
    )


class Pod(_LayoutModel):
    pod_id: str = Field(min_length=1)
    pod_type: PodType
    equipment: List[str] = Field(default_factory=list)


class SiteLayout(_LayoutModel):
    layout_id: str = Field(min_length=1)
    name: str = ""
    pods: List[Pod] = Field(default_factory=list)
    station_pod_defaults: Dict[str, PodType] = Field(default_factory=dict)
    station_locations: Dict[str, str] = Field(default_factory=dict)


# ---- Default layout ---------------------------------------------------------


def _pod(pod_id: str, pod_type: str, *equipment: str) -> Pod:
    return Pod(pod_id=pod_id, pod_type=pod_type, equipment=list(equipment))


DEFAULT_SITE_LAYOUT = SiteLayout(
    layout_id="mock-hdr-11-pod",
    name="Mock 11-Pod Layout",
    pods=[
        _pod("Cold_Pod_1A", "COLD", "PRESS", "TOASTER"),
        _pod("Cold_Pod_2A", "COLD", "PRESS", "TOASTER"),
        _pod("Cold_Pod_3A", "COLD", "PRESS", "TOASTER"),
        _pod("Hot_Pod_1A", "HOT", "TURBO_OVEN", "TURBO_OVEN", "TURBO_OVEN", "TURBO_OVEN"),
        _pod("Hot_Pod_2A", "HOT", "WATER_BATH", "WATER_BATH", "MICROWAVE", "MICROWAVE"),
        _pod("Hot_Pod_3A", "HOT", "FRYER", "FRYER"),
        _pod("Hybrid_Pod_1C", "HYBRID", "WATER_BATH", "PRESS", "RICE_COOKER", "TURBO_OVEN"),
        _pod("Hybrid_Pod_1D", "HYBRID", "TURBO_OVEN", "TURBO_OVEN", "WATER_BATH"),
        _pod("Hybrid_Pod_2C", "HYBRID", "PRESS", "WATER_BATH", "TURBO_OVEN"),
        _pod("Expo_Pod_1", "EXPO"),
        _pod("Vending_Pod_1A", "VENDING", "VENDING"),
    ],
    station_pod_defaults={
        "fryer": "HOT",
        "waterbath": "HOT",
        "turbo": "HOT",
        "microwave": "HOT",
        "clamshell_grill": "CLAMSHELL",
        "press": "COLD",
        "toaster": "COLD",
        "garnish": "COLD",
        "pizza": "PIZZA",
        "expo": "EXPO",
        "prep": "COLD",
        "vending": "VENDING",
        "speed_line": "COLD",
    },
    station_locations={
        "garnish": "Cold_Pod_1A",
        "speed_line": "Cold_Pod_2A",
        "prep": "Cold_Pod_3A",
        "expo": "Expo_Pod_1",
        "vending": "Vending_Pod_1A",
    },
)

# appliance id (kitchen vocabulary) -> pod equipment id
_EQUIPMENT_ID_MAP: Dict[str, str] = {
    "fryer": "FRYER",
    "waterbath": "WATER_BATH",
    "turbo": "TURBO_OVEN",
    "toaster": "TOASTER",
    "clamshell_grill": "CLAMSHELL",
    "press": "PRESS",
    "pizza_oven": "PIZZA_OVEN",
    "pizza_conveyor_oven": "PIZZA_CONVEYOR_OVEN",
    "microwave": "MICROWAVE",
    "vending": "VENDING",
    "hot_box": "HOT_BOX",
    "hot_well": "HOT_WELL",
    "steam_well": "STEAM_WELL",
    "sauce_warmer": "SAUCE_WARMER",
    "rice_cooker": "RICE_COOKER",
}

STATION_PRIMARY_EQUIPMENT: Dict[str, str] = {
    "fryer": "FRYER",
    "waterbath": "WATER_BATH",
    "turbo": "TURBO_OVEN",
    "microwave": "MICROWAVE",
    "clamshell_grill": "CLAMSHELL",
    "press": "PRESS",
    "toaster": "TOASTER",
    "pizza": "PIZZA_OVEN",
}


def normalize_equipment_id(equipment_id: str) -> str:
    return _EQUIPMENT_ID_MAP.get(equipment_id.lower(), equipment_id.upper())


def find_pods_with_equipment(layout: SiteLayout, equipment_id: str) -> List[Pod]:
    normalized = normalize_equipment_id(equipment_id)
    return [p for p in layout.pods if normalized in p.equipment]


def assign_pod_for_step(
    equipment_id: Optional[str],
    station_id: Optional[str],
    layout: SiteLayout,
) -> Optional[str]:
    """
    Resolve the pod hosting a step location.

    Rules (first match wins):
    - Explicit station location in the layout.
    - First pod holding the step's appliance.
    - First pod holding the station's primary appliance.
    - First pod of the station's default pod type.
    - Otherwise None (unassigned).
    """
    if station_id and station_id in layout.station_locations:
        return layout.station_locations[station_id]

    if equipment_id:
        pods = find_pods_with_equipment(layout, equipment_id)
        if pods:
            return pods[0].pod_id

    if station_id:
        primary = STATION_PRIMARY_EQUIPMENT.get(station_id)
        if primary:
            pods = [p for p in layout.pods if primary in p.equipment]
            if pods:
                return pods[0].pod_id

        pod_type = layout.station_pod_defaults.get(station_id)
        if pod_type:
            for p in layout.pods:
                if p.pod_type == pod_type:
                    return p.pod_id

    return None


def make_site_assigner(layout: SiteLayout = DEFAULT_SITE_LAYOUT) -> SiteAssigner:
    def assign(equipment_id: Optional[str], station_id: Optional[str]) -> Optional[str]:
        return assign_pod_for_step(equipment_id, station_id, layout)

    return assign


# ---- File I/O ---------------------------------------------------------------


def load_site_layout(path: str | Path) -> SiteLayout:
    """Load a site layout from a YAML (or JSON) file.

    Raises:
        ValueError: if the file is empty or does not describe a valid layout.
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"site layout {path}: expected a mapping, got {type(raw).__name__}")
    layout = SiteLayout.model_validate(raw)
    logger.info("Loaded site layout %s (%d pods) from %s", layout.layout_id, len(layout.pods), path)
    return layout


def save_site_layout(layout: SiteLayout, path: str | Path) -> None:
    data = layout.model_dump(by_alias=True, mode="json")
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False)
    logger.info("Saved site layout %s to %s", layout.layout_id, path)
