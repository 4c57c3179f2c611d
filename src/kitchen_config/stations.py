"""Station compatibility tables.

Each station declares its side of the kitchen, the sub-locations that exist
there and the equipment it offers. The reverse index (equipment -> stations)
drives station inference: equipment offered by exactly one station is
"unique" and pins the station; equipment offered by several is "shared" and
needs an explicit station id.
"""

from __future__ import annotations
from typing import Dict, List, Optional, Tuple

SIDES = ("hot_side", "cold_side", "expo", "vending")

ALL_SUBLOCATION_IDS: Tuple[str, ...] = (
    "work_surface",
    "cold_rail",
    "dry_rail",
    "cold_storage",
    "packaging",
    "kit_storage",
    "window_shelf",
    "equipment",
    "stretch_table",
    "cut_table",
    "freezer",
)

ALL_EQUIPMENT_IDS: Tuple[str, ...] = (
    "fryer",
    "waterbath",
    "turbo",
    "toaster",
    "clamshell_grill",
    "press",
    "pizza_oven",
    "pizza_conveyor_oven",
    "microwave",
    "vending",
    "hot_box",
    "hot_well",
    "steam_well",
    "sauce_warmer",
    "other",
)

_BASE = ["work_surface", "cold_rail", "dry_rail", "cold_storage", "packaging", "equipment"]

# station -> (side, sublocations, equipment)
STATIONS: Dict[str, Tuple[str, List[str], List[str]]] = {
    "fryer": ("hot_side", _BASE + ["freezer"], ["fryer", "hot_box"]),
    "waterbath": ("hot_side", list(_BASE), ["waterbath", "hot_box"]),
    "turbo": ("hot_side", list(_BASE), ["turbo", "hot_box"]),
    "toaster": ("hot_side", list(_BASE), ["toaster"]),
    "clamshell_grill": (
        "hot_side",
        list(_BASE),
        ["clamshell_grill", "toaster", "press"],
    ),
    "pizza": (
        "hot_side",
        _BASE + ["stretch_table", "cut_table"],
        ["pizza_oven", "pizza_conveyor_oven", "sauce_warmer", "hot_box", "waterbath"],
    ),
    "microwave": ("hot_side", list(_BASE), ["microwave", "hot_box"]),
    "garnish": (
        "cold_side",
        [
            "work_surface",
            "cold_rail",
            "dry_rail",
            "cold_storage",
            "packaging",
            "kit_storage",
            "equipment",
        ],
        ["toaster", "press"],
    ),
    "speed_line": (
        "cold_side",
        list(_BASE),
        [
            "waterbath",
            "turbo",
            "press",
            "microwave",
            "sauce_warmer",
            "hot_box",
            "hot_well",
            "steam_well",
        ],
    ),
    "prep": (
        "cold_side",
        ["work_surface", "cold_rail", "dry_rail", "cold_storage", "packaging"],
        [],
    ),
    "expo": ("expo", ["work_surface", "window_shelf"], []),
    "vending": ("vending", ["equipment"], ["vending"]),
    "other": (
        "cold_side",
        [
            "work_surface",
            "cold_rail",
            "dry_rail",
            "cold_storage",
            "packaging",
            "kit_storage",
            "window_shelf",
            "equipment",
        ],
        ["other"],
    ),
    # Legacy side-level station ids still present in older builds
    "hot_side": (
        "hot_side",
        list(_BASE),
        [
            "fryer",
            "waterbath",
            "turbo",
            "toaster",
            "clamshell_grill",
            "press",
            "pizza_oven",
            "microwave",
            "hot_box",
        ],
    ),
    "cold_side": (
        "cold_side",
        ["work_surface", "cold_rail", "dry_rail", "cold_storage", "packaging", "kit_storage"],
        [],
    ),
}


def _build_equipment_index() -> Dict[str, List[str]]:
    index: Dict[str, List[str]] = {}
    for station_id, (_side, _subs, equipment) in STATIONS.items():
        for eq in equipment:
            index.setdefault(eq, []).append(station_id)
    return index


EQUIPMENT_TO_STATIONS: Dict[str, List[str]] = _build_equipment_index()


# ---- Station lookups --------------------------------------------------------


def get_station_side(station_id: Optional[str]) -> str:
    """Side of the kitchen for a station; unknown or missing stations count as cold side."""
    if station_id and station_id in STATIONS:
        return STATIONS[station_id][0]
    return "cold_side"


def get_station_sublocations(station_id: Optional[str]) -> List[str]:
    if station_id and station_id in STATIONS:
        return list(STATIONS[station_id][1])
    return list(ALL_SUBLOCATION_IDS)


def get_station_equipment(station_id: Optional[str]) -> List[str]:
    if station_id and station_id in STATIONS:
        return list(STATIONS[station_id][2])
    return []


def is_valid_sublocation_for_station(
    station_id: Optional[str], sublocation_id: Optional[str]
) -> bool:
    if not sublocation_id:
        return True
    return sublocation_id in get_station_sublocations(station_id)


def is_equipment_available_at_station(
    equipment_id: Optional[str], station_id: Optional[str]
) -> bool:
    if not equipment_id or not station_id:
        return False
    return equipment_id in get_station_equipment(station_id)


def get_default_sublocation(station_id: Optional[str]) -> str:
    subs = get_station_sublocations(station_id)
    if "work_surface" in subs:
        return "work_surface"
    return subs[0] if subs else "work_surface"


# ---- Equipment uniqueness ---------------------------------------------------


def stations_for_equipment(equipment_id: Optional[str]) -> List[str]:
    if not equipment_id:
        return []
    return list(EQUIPMENT_TO_STATIONS.get(equipment_id, []))


def stations_for_sublocation(sublocation_id: Optional[str]) -> List[str]:
    if not sublocation_id:
        return []
    return [sid for sid, (_side, subs, _eq) in STATIONS.items() if sublocation_id in subs]


def is_unique_equipment(equipment_id: Optional[str]) -> bool:
    return len(stations_for_equipment(equipment_id)) == 1


def is_shared_equipment(equipment_id: Optional[str]) -> bool:
    return len(stations_for_equipment(equipment_id)) > 1


def get_station_for_unique_equipment(equipment_id: Optional[str]) -> Optional[str]:
    stations = stations_for_equipment(equipment_id)
    return stations[0] if len(stations) == 1 else None


def can_derive_station_from_equipment(equipment_id: Optional[str]) -> bool:
    return get_station_for_unique_equipment(equipment_id) is not None


def filter_candidates_by_grouping(
    candidates: List[str], grouping_id: Optional[str]
) -> List[str]:
    """Keep candidates on the grouping's side; if nothing survives, return the input unchanged."""
    if not grouping_id:
        return list(candidates)
    filtered = [c for c in candidates if get_station_side(c) == grouping_id]
    return filtered if filtered else list(candidates)


def location_station_candidates(
    sublocation_id: Optional[str],
    equipment_id: Optional[str] = None,
    grouping_id: Optional[str] = None,
) -> List[str]:
    """
    Stations that could host a location.

    Rules:
    - Equipment sub-location with an appliance id: stations offering that appliance.
    - Equipment sub-location without an appliance id: no candidates (cannot narrow).
    - Any other sub-location: stations where it exists.
    - The result is narrowed by grouping (side) when that leaves at least one station.
    """
    if not sublocation_id:
        return []
    if sublocation_id == "equipment":
        if not equipment_id:
            return []
        candidates = stations_for_equipment(equipment_id)
    else:
        candidates = stations_for_sublocation(sublocation_id)
    return filter_candidates_by_grouping(candidates, grouping_id)
