from __future__ import annotations
from typing import Dict, List, Optional, Tuple
import pandas as pd

from schema.models import AssemblyRef, Build, LocationRef, Step
from schema.derived import DerivedTransferStep, TransferAction
from kitchen_config.derivation import RETRIEVAL_SUBLOCATIONS
from kitchen_config.pods import SiteAssigner, make_site_assigner
from kitchen_config.transfers import (
    TransferLocationInfo,
    determine_transfer_type,
    get_transfer_base_time,
    get_transfer_complexity,
    is_high_complexity_transfer,
)

TRANSFER_TYPES = ("intra_station", "inter_station", "inter_pod")


# ---- Location resolution ----------------------------------------------------


def _meaningful(loc: Optional[LocationRef]) -> Optional[LocationRef]:
    return loc if loc is not None and loc.is_meaningful() else None


def _with_fallback_station(
    loc: Optional[LocationRef], station_id: Optional[str]
) -> Optional[LocationRef]:
    if loc is None or loc.station_id or not station_id or not loc.sublocation_type:
        return loc
    return loc.model_copy(update={"station_id": station_id})


def step_work_location(step: Step) -> Optional[LocationRef]:
    if not step.station_id and step.work_location is None:
        return None
    return LocationRef(station_id=step.station_id, sublocation=step.work_location)


def resolve_producer_location(step: Step, out: AssemblyRef) -> Optional[LocationRef]:
    """Output destination, else legacy step.to, else where the step works."""
    return (
        _meaningful(_with_fallback_station(out.to, step.station_id))
        or _meaningful(_with_fallback_station(step.to, step.station_id))
        or step_work_location(step)
    )


def resolve_consumer_location(step: Step, inp: AssemblyRef) -> Optional[LocationRef]:
    """Where the step works, else legacy step.from, else the input's own origin."""
    return (
        step_work_location(step)
        or _meaningful(_with_fallback_station(step.from_, step.station_id))
        or _meaningful(_with_fallback_station(inp.from_, step.station_id))
    )


def locations_match(a: LocationRef, b: LocationRef) -> bool:
    if a.station_id != b.station_id:
        return False
    if a.sublocation_type != b.sublocation_type:
        return False
    if a.sublocation_type == "equipment" or b.sublocation_type == "equipment":
        return a.equipment_id == b.equipment_id
    return True


def infer_transfer_technique(src: LocationRef, dst: LocationRef) -> str:
    if dst.station_id == "expo" or dst.sublocation_type == "window_shelf":
        return "handoff"
    if src.sublocation_type in RETRIEVAL_SUBLOCATIONS:
        return "retrieve"
    if src.station_id and dst.station_id and src.station_id != dst.station_id:
        return "pass"
    return "place"


def _transfer_info(loc: LocationRef, assign: SiteAssigner) -> TransferLocationInfo:
    equipment_id = loc.equipment_id if loc.sublocation_type == "equipment" else None
    return TransferLocationInfo(
        station_id=loc.station_id,
        sublocation_id=loc.sublocation_type,
        pod_id=assign(equipment_id, loc.station_id),
    )


# ---- Derivation -------------------------------------------------------------


def _producer_map(build: Build) -> Dict[str, Tuple[str, LocationRef]]:
    producers: Dict[str, Tuple[str, LocationRef]] = {}
    for step in build.steps:
        for out in step.output:
            if not out.in_build or not out.assembly_id:
                continue
            loc = resolve_producer_location(step, out)
            if loc is None:
                continue
            producers[out.assembly_id] = (step.id, loc)
    return producers


def _more_severe(new: DerivedTransferStep, old: DerivedTransferStep) -> bool:
    if new.complexity_score != old.complexity_score:
        return new.complexity_score > old.complexity_score
    if new.estimated_time_seconds != old.estimated_time_seconds:
        return new.estimated_time_seconds > old.estimated_time_seconds
    return new.id < old.id


def derive_transfer_steps(
    build: Build, site_assigner: Optional[SiteAssigner] = None
) -> List[DerivedTransferStep]:
    """
    Synthesize the implicit movements between producers and consumers.

    Rules:
    - For each in-build input with a producer, compare the producer's resolved
      output location with the consumer's resolved location.
    - Equivalent locations (same station, same sub-location, same appliance
      for equipment) need no transfer.
    - The move type comes from station/pod comparison; pods are assigned by
      ``site_assigner`` (default site layout when omitted).
    - One transfer per (producer, consumer) edge; on conflict the higher cost,
      then higher time, then smaller id is kept.
    - Output order: (producer order, consumer order, id).
    """
    assign = site_assigner or make_site_assigner()
    steps = sorted(build.steps, key=lambda s: (s.order_index or 0, s.id))
    producers = _producer_map(build)
    by_edge: Dict[str, DerivedTransferStep] = {}

    for step in steps:
        for inp in step.input:
            if not inp.in_build or not inp.assembly_id:
                continue
            producer = producers.get(inp.assembly_id)
            if producer is None:
                continue
            producer_id, producer_loc = producer

            src = _meaningful(producer_loc)
            dst = resolve_consumer_location(step, inp)
            if src is None or dst is None or locations_match(src, dst):
                continue

            src_info = _transfer_info(src, assign)
            dst_info = _transfer_info(dst, assign)
            transfer_type = determine_transfer_type(src_info, dst_info)
            if transfer_type is None:
                continue

            candidate = DerivedTransferStep(
                id=f"transfer-{producer_id}__{step.id}",
                action=TransferAction(technique_id=infer_transfer_technique(src, dst)),
                transfer_type=transfer_type,
                assembly_id=inp.assembly_id,
                from_=src,
                to=dst,
                complexity_score=get_transfer_complexity(transfer_type),
                estimated_time_seconds=get_transfer_base_time(transfer_type),
                producer_step_id=producer_id,
                consumer_step_id=step.id,
                from_pod_id=src_info.pod_id,
                to_pod_id=dst_info.pod_id,
            )
            key = f"{producer_id}->{step.id}"
            existing = by_edge.get(key)
            if existing is None or _more_severe(candidate, existing):
                by_edge[key] = candidate

    order = {s.id: s.order_index or 0 for s in steps}

    def _sort_key(t: DerivedTransferStep) -> Tuple[int, int, str]:
        return (order.get(t.producer_step_id, 0), order.get(t.consumer_step_id, 0), t.id)

    return sorted(by_edge.values(), key=_sort_key)


# ---- Summaries --------------------------------------------------------------


def group_transfers_by_type(
    transfers: List[DerivedTransferStep],
) -> Dict[str, List[DerivedTransferStep]]:
    groups: Dict[str, List[DerivedTransferStep]] = {t: [] for t in TRANSFER_TYPES}
    for t in transfers:
        groups[t.transfer_type].append(t)
    return groups


def total_transfer_complexity(transfers: List[DerivedTransferStep]) -> int:
    return sum(t.complexity_score for t in transfers)


def total_transfer_time(transfers: List[DerivedTransferStep]) -> int:
    return sum(t.estimated_time_seconds for t in transfers)


def summarize_transfers(transfers: List[DerivedTransferStep]) -> Dict[str, object]:
    grouped = group_transfers_by_type(transfers)
    return {
        "totalTransfers": len(transfers),
        "byType": {t: len(v) for t, v in grouped.items()},
        "totalComplexity": total_transfer_complexity(transfers),
        "totalEstimatedTime": total_transfer_time(transfers),
        "hasHighComplexityTransfers": any(
            is_high_complexity_transfer(t) and grouped[t] for t in TRANSFER_TYPES
        ),
    }


def transfer_summary(
    build: Build, site_assigner: Optional[SiteAssigner] = None
) -> Dict[str, object]:
    return summarize_transfers(derive_transfer_steps(build, site_assigner))


def transfers_frame(transfers: List[DerivedTransferStep]) -> pd.DataFrame:
    """One row per transfer, in derivation order."""
    cols = [
        "id",
        "assembly_id",
        "transfer_type",
        "technique_id",
        "producer_step_id",
        "consumer_step_id",
        "from_station",
        "from_sublocation",
        "to_station",
        "to_sublocation",
        "from_pod_id",
        "to_pod_id",
        "complexity_score",
        "estimated_time_seconds",
    ]
    rows = [
        {
            "id": t.id,
            "assembly_id": t.assembly_id,
            "transfer_type": t.transfer_type,
            "technique_id": t.action.technique_id,
            "producer_step_id": t.producer_step_id,
            "consumer_step_id": t.consumer_step_id,
            "from_station": t.from_.station_id,
            "from_sublocation": t.from_.sublocation_type,
            "to_station": t.to.station_id,
            "to_sublocation": t.to.sublocation_type,
            "from_pod_id": t.from_pod_id,
            "to_pod_id": t.to_pod_id,
            "complexity_score": t.complexity_score,
            "estimated_time_seconds": t.estimated_time_seconds,
        }
        for t in transfers
    ]
    return pd.DataFrame(rows, columns=cols)
