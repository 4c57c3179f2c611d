import pytest

from schema.models import ordered_steps
from schema.validate import builds_frame, collect_schema_issues, dump_build, parse_build

from factories import build_doc, loc, ref, step, tortilla_build


def test_parse_build_camel_case_round_trip():
    doc = build_doc(
        [
            step(
                "s1",
                "PREP",
                order=1,
                techniqueId="open_pack",
                stationId="garnish",
                output=[ref("lettuce", to=loc("garnish", "work_surface"))],
            )
        ]
    )
    b = parse_build(doc)
    s = b.steps[0]
    assert s.family == "PREP"
    assert s.technique_id == "open_pack"
    assert s.output[0].to.sublocation_type == "work_surface"
    assert b.created_at.tzinfo is not None

    wire = dump_build(b)
    assert wire["steps"][0]["orderIndex"] == 1
    assert wire["steps"][0]["output"][0]["to"]["stationId"] == "garnish"
    assert "order_index" not in wire["steps"][0]


def test_from_alias_is_exposed_as_from_():
    b = tortilla_build()
    inp = b.step_by_id()["s2"].input[0]
    assert inp.from_.station_id == "toaster"
    assert dump_build(b)["steps"][1]["input"][0]["from"]["sublocation"]["type"] == "work_surface"


def test_models_are_frozen():
    b = tortilla_build()
    with pytest.raises(Exception):
        b.steps[0].station_id = "garnish"
    changed = b.steps[0].model_copy(update={"station_id": "garnish"})
    assert changed.station_id == "garnish"
    assert b.steps[0].station_id == "toaster"


def test_invalid_document_raises_with_paths():
    doc = build_doc([{"id": "s1", "action": {"family": "PREP"}, "orderIndex": "first"}])
    issues = collect_schema_issues(doc)
    assert issues, "expected schema issues for non-integer orderIndex"
    assert any("orderIndex" in i.path or "order_index" in i.path for i in issues), issues

    with pytest.raises(ValueError) as e:
        parse_build(doc)
    assert "Validation failed for build b1" in str(e.value)


def test_non_mapping_document_rejected():
    with pytest.raises(ValueError):
        parse_build(["not", "a", "build"])


def test_dependency_refs_accept_strings_and_objects():
    b = parse_build(
        build_doc(
            [
                step("a", order=1),
                step("b", order=2, dependsOn=["a", {"stepId": "c"}]),
                step("c", order=3),
            ]
        )
    )
    assert b.step_by_id()["b"].dependency_ids == ["a", "c"]


def test_ordered_steps_uses_order_track_then_id():
    b = parse_build(
        build_doc(
            [
                step("z", order=2),
                step("b", order=1, trackId="t2"),
                step("a", order=1, trackId="t1"),
                step("c"),
            ]
        )
    )
    assert [s.id for s in ordered_steps(b.steps)] == ["c", "a", "b", "z"]


def test_builds_frame_filters_by_status():
    drafts = tortilla_build("d1")
    published = tortilla_build("p1", status="published")
    df = builds_frame([drafts, published], status="published")
    assert list(df["build_id"]) == ["p1"]
    assert int(df.iloc[0]["step_count"]) == 3
