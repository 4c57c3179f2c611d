"""Structural signals: graph-shape metrics that feed the score, each with per-occurrence details."""

from __future__ import annotations
from typing import Dict, List, Optional, Tuple

from schema.models import Build, Step
from schema.derived import DerivedTransferStep
from complexity.config import ComplexityConfig, get_signal_weight
from complexity.features import scoring_order, step_side
from complexity.types import SignalDetail, StructuralSignals

SignalCount = Tuple[int, List[SignalDetail]]


def _station(step: Step) -> str:
    return step.station_id or "other"


def _by_track(steps: List[Step]) -> Dict[str, List[Step]]:
    tracks: Dict[str, List[Step]] = {}
    for step in steps:
        tracks.setdefault(step.track_id or "default", []).append(step)
    return tracks


def _visits(steps: List[Step], key) -> Tuple[List[int], Dict[str, Tuple[str, List[int]]]]:
    """
    Visit numbering for a track.

    Returns the visit number of every step, and key -> (first step id, visit
    numbers) in first-visit order. A visit is a maximal run of equal keys.
    """
    numbers: List[int] = []
    by_key: Dict[str, Tuple[str, List[int]]] = {}
    current: Optional[str] = None
    visit = 0
    for step in steps:
        k = key(step)
        if k != current:
            current = k
            visit += 1
            by_key.setdefault(k, (step.id, []))[1].append(visit)
        numbers.append(visit)
    return numbers, by_key


def count_grouping_bounces(build: Build) -> SignalCount:
    details: List[SignalDetail] = []
    for track, steps in _by_track(scoring_order(build.steps)).items():
        _numbers, by_grouping = _visits(steps, step_side)
        for grouping, (first_id, visits) in by_grouping.items():
            if len(visits) > 1:
                joined = ", ".join(str(v) for v in visits)
                details.append(
                    SignalDetail(
                        step_ids=[first_id],
                        description=f"Grouping '{grouping}' revisited in track '{track}' (visits: {joined})",
                    )
                )
    return len(details), details


def count_station_bounces(build: Build) -> SignalCount:
    """
    Station revisits where every step from the first visit through the second
    stays in one grouping.
    """
    details: List[SignalDetail] = []
    for track, steps in _by_track(scoring_order(build.steps)).items():
        numbers, by_station = _visits(steps, _station)
        for station, (first_id, visits) in by_station.items():
            if len(visits) < 2:
                continue
            first, second = visits[0], visits[1]
            groupings = {step_side(s) for s, n in zip(steps, numbers) if first <= n <= second}
            if len(groupings) > 1:
                continue
            details.append(
                SignalDetail(
                    step_ids=[first_id],
                    description=f"Station '{station}' revisited in track '{track}' within same grouping",
                )
            )
    return len(details), details


def count_merge_points(build: Build, min_inputs: int = 2) -> SignalCount:
    label = "Merge point" if min_inputs < 3 else "Deep merge"
    details = [
        SignalDetail(step_ids=[s.id], description=f"{label} with {len(s.input)} inputs")
        for s in build.steps
        if len(s.input) >= min_inputs
    ]
    return len(details), details


def count_deep_merges(build: Build) -> SignalCount:
    return count_merge_points(build, min_inputs=3)


def count_parallel_entry_points(build: Build) -> SignalCount:
    details = [
        SignalDetail(step_ids=[s.id], description="Entry point (no dependencies)")
        for s in build.steps
        if not s.depends_on
    ]
    return len(details), details


def count_short_equipment_steps(build: Build, threshold_seconds: float) -> SignalCount:
    details: List[SignalDetail] = []
    for step in build.steps:
        if not step.appliance_id:
            continue
        duration = step.time.duration_seconds if step.time else 0
        if 0 < duration < threshold_seconds:
            details.append(
                SignalDetail(
                    step_ids=[step.id],
                    description=f"Short equipment step ({duration:g}s < {threshold_seconds:g}s threshold)",
                )
            )
    return len(details), details


def count_back_to_back_equipment(build: Build) -> SignalCount:
    steps = scoring_order(build.steps)
    details = [
        SignalDetail(
            step_ids=[prev.id, cur.id],
            description=f"Back-to-back equipment: {prev.appliance_id} → {cur.appliance_id}",
        )
        for prev, cur in zip(steps, steps[1:])
        if prev.appliance_id and cur.appliance_id
    ]
    return len(details), details


def count_transfers(transfers: List[DerivedTransferStep]) -> SignalCount:
    details = [
        SignalDetail(
            step_ids=[t.producer_step_id, t.consumer_step_id],
            description=f"Transfer ({t.transfer_type}): {t.assembly_id}",
        )
        for t in transfers
    ]
    return len(details), details


def count_station_transitions(build: Build) -> SignalCount:
    details: List[SignalDetail] = []
    prev: Optional[str] = None
    for step in scoring_order(build.steps):
        station = _station(step)
        if prev is not None and station != prev:
            details.append(
                SignalDetail(step_ids=[step.id], description=f"Station transition: {prev} → {station}")
            )
        prev = station
    return len(details), details


def extract_structural_signals(
    build: Build,
    config: ComplexityConfig,
    transfers: List[DerivedTransferStep],
) -> StructuralSignals:
    """All signals for a build; ``transfers`` is the transfer deriver's output for it."""
    counted = {
        "groupingBounces": count_grouping_bounces(build),
        "stationBounces": count_station_bounces(build),
        "mergePointCount": count_merge_points(build),
        "deepMergeCount": count_deep_merges(build),
        "parallelEntryPoints": count_parallel_entry_points(build),
        "shortEquipmentSteps": count_short_equipment_steps(
            build, config.thresholds.short_equipment_seconds
        ),
        "backToBackEquipment": count_back_to_back_equipment(build),
        "transferCount": count_transfers(transfers),
        "stationTransitions": count_station_transitions(build),
    }
    return StructuralSignals(
        grouping_bounces=counted["groupingBounces"][0],
        station_bounces=counted["stationBounces"][0],
        merge_point_count=counted["mergePointCount"][0],
        deep_merge_count=counted["deepMergeCount"][0],
        parallel_entry_points=counted["parallelEntryPoints"][0],
        short_equipment_steps=counted["shortEquipmentSteps"][0],
        back_to_back_equipment=counted["backToBackEquipment"][0],
        transfer_count=counted["transferCount"][0],
        station_transitions=counted["stationTransitions"][0],
        details={name: d for name, (_n, d) in counted.items() if d},
    )


def score_structural_signals(signals: StructuralSignals, config: ComplexityConfig) -> float:
    return sum(count * get_signal_weight(config, name) for name, count in signals.counts().items())
