"""Transfer classification and cost table."""

from __future__ import annotations
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel

TransferType = Literal["intra_station", "inter_station", "inter_pod"]


class TransferCost(BaseModel):
    complexity_score: int
    base_time_seconds: int
    description: str = ""


TRANSFER_SCORING: Dict[str, TransferCost] = {
    "intra_station": TransferCost(
        complexity_score=1,
        base_time_seconds=5,
        description="Move within same station (e.g., cold_rail -> work_surface)",
    ),
    "inter_station": TransferCost(
        complexity_score=3,
        base_time_seconds=15,
        description="Move between stations in same pod",
    ),
    "inter_pod": TransferCost(
        complexity_score=5,
        base_time_seconds=30,
        description="Move between different pods",
    ),
}

HIGH_COMPLEXITY_THRESHOLD = 4


class TransferLocationInfo(BaseModel):
    station_id: Optional[str] = None
    sublocation_id: Optional[str] = None
    pod_id: Optional[str] = None


def determine_transfer_type(
    src: TransferLocationInfo, dst: TransferLocationInfo
) -> Optional[TransferType]:
    """
    Classify a move between two locations.

    Rules (first match wins):
    - Both pods known and different -> inter_pod.
    - Both stations known and different -> inter_station.
    - Same station: different sub-location -> intra_station, same -> no move.
    - Exactly one station known -> inter_station.
    - Otherwise -> no move.
    """
    if src.pod_id and dst.pod_id and src.pod_id != dst.pod_id:
        return "inter_pod"
    if src.station_id and dst.station_id and src.station_id != dst.station_id:
        return "inter_station"
    if src.station_id == dst.station_id:
        if src.sublocation_id != dst.sublocation_id:
            return "intra_station"
        return None
    if src.station_id or dst.station_id:
        return "inter_station"
    return None


def get_transfer_complexity(transfer_type: str) -> int:
    return TRANSFER_SCORING[transfer_type].complexity_score


def get_transfer_base_time(transfer_type: str) -> int:
    return TRANSFER_SCORING[transfer_type].base_time_seconds


def get_transfer_types_by_complexity() -> List[str]:
    return sorted(TRANSFER_SCORING, key=lambda t: TRANSFER_SCORING[t].complexity_score)


def is_high_complexity_transfer(transfer_type: str) -> bool:
    return TRANSFER_SCORING[transfer_type].complexity_score >= HIGH_COMPLEXITY_THRESHOLD
