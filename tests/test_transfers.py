from transfers import (
    compute_build_source_hash,
    derive_transfer_steps,
    summarize_transfers,
    transfers_frame,
)
from transfers.deriver import locations_match
from schema.models import LocationRef, Sublocation

from factories import loc, make_build, ref, step, tortilla_build


def _garnish_to_fryer(**producer_extra):
    return make_build(
        [
            step(
                "s1",
                "PREP",
                order=1,
                techniqueId="cut",
                stationId="garnish",
                workLocation={"type": "work_surface"},
                output=[ref("slaw", to=loc("garnish", "work_surface"))],
                **producer_extra,
            ),
            step(
                "s2",
                "HEAT",
                order=2,
                stationId="fryer",
                equipment={"applianceId": "fryer"},
                time={"durationSeconds": 120},
                workLocation={"type": "equipment", "equipmentId": "fryer"},
                input=[ref("slaw", **{"from": loc("fryer", "work_surface")})],
                output=[ref("fried_slaw", to=loc("fryer", "work_surface"))],
            ),
        ]
    )


def test_same_station_moves_are_intra_station():
    transfers = derive_transfer_steps(tortilla_build())
    assert [t.id for t in transfers] == ["transfer-s1__s2", "transfer-s2__s3"]
    first = transfers[0]
    assert first.transfer_type == "intra_station"
    assert first.action.technique_id == "place"
    assert first.action.family == "TRANSFER"
    assert first.derived is True
    assert (first.from_.sublocation_type, first.to.sublocation_type) == ("work_surface", "equipment")
    assert first.complexity_score == 1


def test_cross_pod_move():
    transfers = derive_transfer_steps(_garnish_to_fryer())
    assert len(transfers) == 1
    t = transfers[0]
    assert t.transfer_type == "inter_pod"
    assert (t.from_pod_id, t.to_pod_id) == ("Cold_Pod_1A", "Hot_Pod_3A")
    assert t.action.technique_id == "pass"
    assert t.complexity_score == 5 and t.estimated_time_seconds == 30


def test_site_assigner_is_pluggable():
    transfers = derive_transfer_steps(_garnish_to_fryer(), site_assigner=lambda eq, st: None)
    assert transfers[0].transfer_type == "inter_station"
    assert transfers[0].from_pod_id is None


def test_retrieval_from_storage():
    b = make_build(
        [
            step("s1", "PREP", order=1, stationId="garnish", output=[ref("lettuce", to=loc("garnish", "cold_rail"))]),
            step(
                "s2",
                "ASSEMBLE",
                order=2,
                stationId="garnish",
                workLocation={"type": "work_surface"},
                input=[ref("lettuce")],
                output=[ref("salad", to=loc("expo", "window_shelf"))],
            ),
        ]
    )
    (t,) = derive_transfer_steps(b)
    assert t.transfer_type == "intra_station"
    assert t.action.technique_id == "retrieve"


def test_matching_locations_need_no_transfer():
    b = make_build(
        [
            step("s1", order=1, stationId="garnish", workLocation={"type": "work_surface"},
                 output=[ref("a", to=loc("garnish", "work_surface"))]),
            step("s2", "ASSEMBLE", order=2, stationId="garnish", workLocation={"type": "work_surface"},
                 input=[ref("a")], output=[ref("b")]),
        ]
    )
    assert derive_transfer_steps(b) == []


def test_one_transfer_per_edge_keeps_the_most_severe():
    b = make_build(
        [
            step(
                "s1",
                order=1,
                stationId="garnish",
                output=[
                    ref("dressing", to=loc("garnish", "cold_rail")),
                    ref("croutons", to=loc("fryer", "work_surface")),
                ],
            ),
            step(
                "s2",
                "COMBINE",
                order=2,
                stationId="garnish",
                workLocation={"type": "work_surface"},
                input=[ref("dressing"), ref("croutons")],
                output=[ref("salad")],
            ),
        ]
    )
    transfers = derive_transfer_steps(b)
    assert len(transfers) == 1, transfers
    assert transfers[0].assembly_id == "croutons"
    assert transfers[0].transfer_type == "inter_pod"


def test_locations_match_compares_equipment():
    fryer = LocationRef(station_id="fryer", sublocation=Sublocation(type="equipment", equipment_id="fryer"))
    box = LocationRef(station_id="fryer", sublocation=Sublocation(type="equipment", equipment_id="hot_box"))
    assert locations_match(fryer, fryer)
    assert not locations_match(fryer, box)


def test_summary_and_frame():
    transfers = derive_transfer_steps(_garnish_to_fryer()) + derive_transfer_steps(tortilla_build())
    summary = summarize_transfers(transfers)
    assert summary["totalTransfers"] == 3
    assert summary["byType"] == {"intra_station": 2, "inter_station": 0, "inter_pod": 1}
    assert summary["totalComplexity"] == 7
    assert summary["hasHighComplexityTransfers"] is True

    df = transfers_frame(transfers)
    assert list(df["transfer_type"]) == ["inter_pod", "intra_station", "intra_station"]


def test_source_hash_ignores_notes_but_not_locations():
    base = _garnish_to_fryer()
    noted = _garnish_to_fryer(notes="use the sharp knife", instruction="Cut the slaw")
    moved = base.model_copy(
        update={"steps": [base.steps[0].model_copy(update={"station_id": "prep"}), base.steps[1]]}
    )
    h = compute_build_source_hash(base)
    assert len(h) == 16
    assert compute_build_source_hash(noted) == h
    assert compute_build_source_hash(moved) != h


def test_transfers_sort_by_numeric_step_order():
    def pair(producer_id, consumer_id, order, assembly_id):
        return [
            step(producer_id, order=order, stationId="garnish", workLocation={"type": "work_surface"},
                 output=[ref(assembly_id, to=loc("garnish", "work_surface"))]),
            step(consumer_id, order=order + 1, stationId="fryer", workLocation={"type": "work_surface"},
                 input=[ref(assembly_id)], output=[ref(f"{assembly_id}_done")]),
        ]

    b = make_build(pair("p10", "c11", 10, "late") + pair("p2", "c3", 2, "early"))
    ids = [t.id for t in derive_transfer_steps(b)]
    assert ids == ["transfer-p2__c3", "transfer-p10__c11"], f"expected numeric order, got: {ids}"
