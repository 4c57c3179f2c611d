from __future__ import annotations
from typing import List, Literal, Optional
from datetime import datetime
from pydantic import Field, field_validator

from schema.models import _Node, _parse_utc, LocationRef

TransferType = Literal["intra_station", "inter_station", "inter_pod"]
TransferTechnique = Literal["place", "retrieve", "pass", "handoff"]


class TransferAction(_Node):
    family: Literal["TRANSFER"] = "TRANSFER"
    technique_id: Optional[TransferTechnique] = None


class DerivedTransferStep(_Node):
    """An implicit movement of one assembly between a producer and a consumer.

    Never authored. Identity is the (producer, consumer) pair; the id is
    ``transfer-{producer}__{consumer}``.
    """

    id: str
    action: TransferAction = Field(default_factory=TransferAction)
    transfer_type: TransferType
    assembly_id: str
    from_: LocationRef = Field(alias="from")
    to: LocationRef
    complexity_score: int
    estimated_time_seconds: int
    derived: Literal[True] = True
    producer_step_id: str
    consumer_step_id: str
    from_pod_id: Optional[str] = None
    to_pod_id: Optional[str] = None


class DerivedBuildData(_Node):
    build_id: str
    computed_at: datetime
    derivation_version: str
    source_hash: str
    transfers: List[DerivedTransferStep] = Field(default_factory=list)

    @field_validator("computed_at", mode="before")
    @classmethod
    def _ts(cls, v):
        return _parse_utc(v)
