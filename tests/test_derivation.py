from schema.models import Assembly, AssemblyLineage
from schema.validate import dump_build
from derivation import (
    compute_assembly_components,
    derive_dependencies,
    derive_output_assembly_location,
    derive_station_id,
    derive_step_work_location,
    is_likely_derived_work_location,
    normalize_build,
    resolve_latest_in_group,
)
from derivation.normalize import derive_group_id

from factories import loc, make_build, ref, step, tortilla_build


def _flow_build(input_order):
    inputs = {
        "a0": ref("a0"),
        "a1": ref("a1"),
    }
    return make_build(
        [
            step("w", "PREP", order=1, output=[ref("a0")]),
            step("x", "PREP", order=2, output=[ref("a1")]),
            step("y", "COMBINE", order=3, input=[inputs[k] for k in input_order], output=[ref("mix")]),
        ]
    )


def test_consumer_depends_on_producer_regardless_of_input_order():
    for order in (["a0", "a1"], ["a1", "a0"]):
        deps = derive_dependencies(_flow_build(order))
        assert ("x", "y") in deps, f"expected x -> y for input order {order}, got: {deps}"
        normalized = normalize_build(_flow_build(order))
        assert "x" in normalized.step_by_id()["y"].dependency_ids


def test_dependencies_skip_self_edges_and_external_refs():
    b = make_build(
        [
            step(
                "s1",
                order=1,
                input=[ref("sauce"), {"source": {"type": "external_build", "itemId": "i9"}}],
                output=[ref("sauce")],
            )
        ]
    )
    assert derive_dependencies(b) == []


def test_work_location_derivation():
    heat = make_build([step("h", "HEAT", order=1, equipment={"applianceId": "fryer"})]).steps[0]
    derived = derive_step_work_location(heat)
    assert derived.derived
    assert derived.value.type == "equipment"
    assert derived.value.equipment_id == "fryer"

    # expo has no cold storage, so a retrieval there happens on the work surface
    retrieve = make_build([step("r", "PREP", order=1, techniqueId="open_pack", stationId="expo")]).steps[0]
    assert derive_step_work_location(retrieve).value.type == "work_surface"

    authored = make_build([step("a", "PREP", order=1, workLocation={"type": "cut_table"})]).steps[0]
    result = derive_step_work_location(authored)
    assert not result.derived and result.value.type == "cut_table"


def test_is_likely_derived_work_location():
    s = make_build([step("p", "PACKAGING", order=1, workLocation={"type": "packaging"})]).steps[0]
    assert is_likely_derived_work_location(s)


def test_output_destination_rules():
    b = tortilla_build()
    s1, s2, s3 = b.steps
    assert derive_output_assembly_location(s3, None).value.station_id == "expo"

    same_station_heat = derive_output_assembly_location(s2, s3).value
    assert same_station_heat.sublocation.type == "equipment"
    assert same_station_heat.sublocation.equipment_id == "toaster"

    elsewhere = s1.model_copy(update={"station_id": "garnish"})
    handoff = derive_output_assembly_location(elsewhere, s2).value
    assert (handoff.station_id, handoff.sublocation.type) == ("garnish", "work_surface")

    no_station = s1.model_copy(update={"station_id": None})
    assert derive_output_assembly_location(no_station, s2) is None


def test_station_derived_from_unique_equipment():
    s = make_build([step("p", "HEAT", order=1, equipment={"applianceId": "pizza_conveyor_oven"})]).steps[0]
    assert derive_station_id(s) == "pizza"

    shared = make_build([step("t", "HEAT", order=1, equipment={"applianceId": "toaster"})]).steps[0]
    assert derive_station_id(shared) is None


def test_normalize_fills_and_records_provenance():
    b = make_build(
        [
            step("s1", "PREP", order=1, techniqueId="cut", stationId="garnish", output=[ref("diced_onion")]),
            step(
                "s2",
                "ASSEMBLE",
                order=2,
                stationId="garnish",
                input=[ref("diced_onion")],
                output=[ref("topped_bowl")],
            ),
        ]
    )
    n = normalize_build(b)
    s1, s2 = n.steps

    assert s1.work_location.type == "work_surface"
    assert s1.provenance.work_location.type == "inferred"
    assert s1.output[0].to.station_id == "garnish"
    assert s1.provenance.to.type == "inferred"
    # input origin copied from the producer's output destination
    assert s2.input[0].from_ == s1.output[0].to
    assert s2.dependency_ids == ["s1"]
    assert s2.input[0].role == "base"

    by_id = n.assembly_by_id()
    assert set(by_id) == {"diced_onion", "topped_bowl"}
    assert by_id["topped_bowl"].type == "intermediate"
    assert by_id["topped_bowl"].evolves_from == "diced_onion"


def test_normalize_does_not_mutate_input():
    b = tortilla_build()
    before = dump_build(b)
    normalize_build(b)
    assert dump_build(b) == before


def test_normalize_is_a_fixpoint():
    b = make_build(
        [
            step("s1", "PREP", order=1, techniqueId="open_pack", output=[ref("bun")]),
            step(
                "s2",
                "HEAT",
                order=2,
                equipment={"applianceId": "pizza_conveyor_oven"},
                time={"durationSeconds": 90},
                input=[ref("bun")],
                output=[ref("toasted_bun")],
            ),
            step(
                "s3",
                "COMBINE",
                order=3,
                stationId="pizza",
                input=[ref("toasted_bun"), ref("bun")],
                output=[ref("sandwich")],
            ),
        ]
    )
    once = normalize_build(b)
    twice = normalize_build(once)
    assert dump_build(twice) == dump_build(once)


def test_merge_inputs_get_a_single_base():
    b = make_build(
        [
            step("a", order=1, stationId="garnish", output=[ref("rice")]),
            step("b", order=2, stationId="garnish", output=[ref("beans")]),
            step(
                "c",
                "COMBINE",
                order=3,
                stationId="garnish",
                input=[ref("rice"), ref("beans")],
                output=[ref("bowl")],
            ),
        ]
    )
    roles = [inp.role for inp in normalize_build(b).step_by_id()["c"].input]
    assert sorted(roles) == ["added", "base"], roles


def test_derive_group_id_strips_version_suffix_from_lineage_root():
    v1 = Assembly(id="patty_v1")
    v2 = Assembly(id="patty_v2", lineage=AssemblyLineage(evolves_from="patty_v1"))
    by_id = {a.id: a for a in (v1, v2)}
    assert derive_group_id(v2, by_id) == "patty"
    assert derive_group_id(Assembly(id="x", group_id="g"), by_id) == "g"


def test_assembly_components_and_latest_in_group():
    b = make_build(
        [
            step("s1", order=1, output=[ref("base_v1")]),
            step("s2", order=2, input=[ref("base_v1")], output=[ref("base_v2")]),
        ],
        assemblies=[
            {"id": "base_v1", "groupId": "base", "bomUsageId": "bom-1"},
            {"id": "base_v2", "groupId": "base"},
        ],
    )
    components = compute_assembly_components(b)
    assert components["base_v2"] == ["bom-1"]
    assert resolve_latest_in_group(b, "base") == "base_v2"
    assert resolve_latest_in_group(b, "missing") is None


def test_locations_gain_the_step_station():
    b = make_build(
        [step("s1", order=1, stationId="garnish", output=[ref("slaw", to=loc(None, "cold_rail"))])]
    )
    n = normalize_build(b)
    assert n.steps[0].output[0].to.station_id == "garnish"
