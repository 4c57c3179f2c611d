import itertools

import pytest

from kitchen_config.validation import ValidationConfig
from validation import (
    RULES,
    Severity,
    ValidationOptions,
    format_validation_result,
    get_fix_hint,
    get_rule,
    validate_build,
    validate_builds,
    validation_frame,
)
from validation.registry import FIX_HINTS, rule

from factories import loc, make_build, ref, step, tortilla_build


def _heat_without_equipment_or_time():
    return make_build(
        [
            step(
                "h1",
                "HEAT",
                order=1,
                stationId="garnish",
                workLocation={"type": "work_surface"},
                output=[ref("warm_bun", to=loc("garnish", "work_surface"))],
            )
        ]
    )


def test_tortilla_example_is_valid():
    result = validate_build(tortilla_build())
    assert result.valid, f"expected valid, got: {result.hard_errors}"
    assert result.hard_errors == []
    assert result.infos == []

    published = validate_build(tortilla_build(status="published"))
    assert published.valid, f"expected valid when published, got: {published.hard_errors}"


def test_heat_step_missing_equipment_and_time_gives_two_hard_errors():
    result = validate_build(_heat_without_equipment_or_time())
    assert not result.valid
    assert [e.rule_id for e in result.hard_errors] == ["H15", "H22"]
    assert all(e.step_id == "h1" for e in result.hard_errors)


def test_valid_iff_no_hard_errors_and_buckets_by_severity():
    builds = [tortilla_build(), _heat_without_equipment_or_time()]
    for b in builds:
        result = validate_build(b)
        assert result.valid == (len(result.hard_errors) == 0)
        assert all(e.severity is Severity.HARD for e in result.hard_errors)
        assert all(e.severity in (Severity.STRONG, Severity.SOFT) for e in result.warnings)
        assert all(e.severity is Severity.INFO for e in result.infos)


def _cycle_steps():
    return {
        "a": step("a", dependsOn=["c"], output=[ref("a_out")]),
        "b": step("b", dependsOn=["a"], output=[ref("b_out")]),
        "c": step("c", dependsOn=["b"], output=[ref("c_out")]),
    }


@pytest.mark.parametrize("order", list(itertools.permutations("abc")))
def test_cycle_reported_once_regardless_of_traversal_order(order):
    steps = _cycle_steps()
    docs = []
    for i, sid in enumerate(order):
        doc = dict(steps[sid])
        doc["orderIndex"] = i
        docs.append(doc)
    result = validate_build(make_build(docs))
    cycles = [e for e in result.hard_errors if e.rule_id == "H9"]
    assert len(cycles) == 1, f"expected one cycle, got: {cycles}"
    assert cycles[0].step_id == "a"
    assert cycles[0].message == "H9: cycle detected: a -> c -> b -> a"


@pytest.mark.parametrize("status", ["draft", "published"])
def test_single_producer_enforced_regardless_of_status(status):
    b = make_build(
        [
            step("s1", order=1, output=[ref("sauce")]),
            step("s2", order=2, output=[ref("sauce")]),
        ],
        status=status,
    )
    errs = [e for e in validate_build(b).hard_errors if e.rule_id == "H44"]
    assert len(errs) == 1, f"expected one H44, got: {errs}"
    assert "(s1, s2)" in errs[0].message


def test_excluded_steps_do_not_count_as_producers():
    b = make_build(
        [
            step("s1", order=1, output=[ref("sauce")]),
            step("s2", order=2, exclude=True, output=[ref("sauce")]),
        ]
    )
    assert "H44" not in validate_build(b).rule_ids()


def test_findings_sorted_by_rule_then_step_order():
    b = make_build(
        [
            step("late", "HEAT", order=5, output=[ref("x")]),
            step("early", "HEAT", order=1, output=[ref("y")]),
        ]
    )
    hard = validate_build(b).hard_errors
    keys = [(e.rule_id, e.step_id) for e in hard]
    assert keys == sorted(keys, key=lambda k: (k[0], {"early": 1, "late": 5}.get(k[1], -1)))
    h15 = [e.step_id for e in hard if e.rule_id == "H15"]
    assert h15 == ["early", "late"]


def test_disabling_rules():
    options = ValidationOptions(disabled_rules={"H15"})
    result = validate_build(_heat_without_equipment_or_time(), options)
    assert [e.rule_id for e in result.hard_errors] == ["H22"]


def test_unknown_rule_ids_rejected():
    with pytest.raises(ValueError):
        ValidationOptions(disabled_rules={"H999"})


def test_opt_in_rule_runs_only_when_enabled():
    assert get_rule("H31").default_enabled is False
    b = tortilla_build()
    assert "H31" not in validate_build(b).rule_ids()

    result = validate_build(b, ValidationOptions(enabled_rules={"H31"}))
    h31 = [e for e in result.warnings if e.rule_id == "H31"]
    # s1 has no inputs; every other ref names a station
    assert h31 == []

    b2 = make_build([step("s1", order=1, output=[ref("x", to=loc(None, "cold_rail"))])])
    result = validate_build(b2, ValidationOptions(enabled_rules={"H31"}))
    assert any(e.rule_id == "H31" for e in result.warnings)


def test_config_is_threaded_through_options():
    # 2 of 3 steps declare dependsOn (67%)
    assert "H26" in validate_build(tortilla_build()).rule_ids()
    relaxed = ValidationOptions(config=ValidationConfig(graph_connectivity_threshold=0.5))
    assert "H26" not in validate_build(tortilla_build(), relaxed).rule_ids()


def test_registry_is_complete_and_hinted():
    assert set(RULES) == set(FIX_HINTS)
    for rid, spec in RULES.items():
        assert spec.rule_id == rid
        assert spec.fix_hint == get_fix_hint(rid)
        assert isinstance(spec.severity, Severity)
        assert spec.scope in ("build", "step")
    with pytest.raises(ValueError):
        get_rule("nope")


def test_duplicate_registration_rejected():
    with pytest.raises(ValueError):
        rule("H1", Severity.HARD, "step", "again")(lambda s, ctx: [])


def test_rule_functions_are_directly_callable():
    from validation.registry import RuleContext
    from kitchen_config.validation import DEFAULT_VALIDATION_CONFIG

    b = _heat_without_equipment_or_time()
    ctx = RuleContext(build=b, config=DEFAULT_VALIDATION_CONFIG)
    errs = get_rule("H15").run(ctx)
    assert [e.rule_id for e in errs] == ["H15"]


def test_format_and_frame():
    result = validate_build(_heat_without_equipment_or_time())
    lines = format_validation_result(result)
    assert lines[0].startswith("INVALID: 2 hard error(s)")
    assert "Hard errors:" in lines
    assert any("[hard] H15:" in line and "step=h1" in line for line in lines)
    assert any("fix: Add equipment.applianceId" in line for line in lines)

    df = validation_frame(result)
    assert list(df.columns) == ["severity", "rule_id", "step_id", "field_path", "message", "fix_hint"]
    assert list(df["rule_id"][:2]) == ["H15", "H22"]
    assert set(df["severity"][:2]) == {"hard"}


def test_result_serializes_camel_case():
    result = validate_build(_heat_without_equipment_or_time())
    data = result.model_dump(by_alias=True, mode="json")
    assert set(data) == {"valid", "hardErrors", "warnings", "infos"}
    first = data["hardErrors"][0]
    assert first["ruleId"] == "H15"
    assert first["severity"] == "hard"
    assert first["stepId"] == "h1"


def test_validate_builds_keys_by_id():
    out = validate_builds([tortilla_build("t1"), _heat_without_equipment_or_time()])
    assert set(out) == {"t1", "b1"}
    assert out["t1"].valid and not out["b1"].valid
