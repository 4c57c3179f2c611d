from schema.models import BomItem
from derivation import normalize_build
from validation import Severity, ValidationOptions, validate_build

from factories import loc, make_build, ref, step


def _errors(build, rule_id, options=None):
    result = validate_build(build, options)
    return [e for e in result.findings if e.rule_id == rule_id]


def _one(doc, **build_fields):
    return make_build([doc], **build_fields)


# ---- Field presence ---------------------------------------------------------


def test_action_family_required_and_known():
    errs = _errors(_one(step("s1", "BAKE", order=1, notes="x")), "H1")
    assert [e.message for e in errs] == ["H1: invalid action.family: BAKE"]
    missing = _errors(_one(step("s1", None, order=1)), "H1")
    assert missing and missing[0].message == "H1: action.family is required"


def test_time_and_quantity_must_be_positive():
    b = _one(step("s1", order=1, notes="x", time={"durationSeconds": 0}, quantity={"value": 0, "unit": "oz"}))
    assert len(_errors(b, "H3")) == 1
    assert len(_errors(b, "H10")) == 1


def test_container_names_are_not_targets():
    bowl = {"type": "bom_component", "name": "Large bowl"}
    assert _errors(_one(step("s1", order=1, notes="x", target=bowl)), "H4")
    with_container = step("s1", order=1, notes="x", target=bowl, container={"type": "bowl"})
    assert not _errors(_one(with_container), "H4")
    packaging = {"type": "packaging", "name": "Large bowl"}
    assert not _errors(_one(step("s1", order=1, notes="x", target=packaging)), "H4")


def test_overlay_priority_and_predicate():
    named = {"id": "o1", "priority": "high", "predicate": {"equipmentProfileId": "p1"}}
    b = _one(step("s1", order=1, notes="x", overlays=[named]))
    assert len(_errors(b, "H11")) == 1
    assert not _errors(b, "H14")

    empty = {"id": "o2", "priority": 1}
    b = _one(step("s1", order=1, notes="x", overlays=[empty]))
    assert len(_errors(b, "H14")) == 1
    assert not _errors(b, "H11")

    flag = {"id": "o3", "priority": True, "predicate": {"minCustomizationCount": 1}}
    assert _errors(_one(step("s1", order=1, notes="x", overlays=[flag])), "H11")


def test_family_specific_requirements():
    heat_with_notes = step("h", "HEAT", order=1, equipment={"applianceId": "fryer"}, notes="until golden")
    assert not _errors(_one(heat_with_notes), "H22")

    assert _errors(_one(step("p", "PACKAGING", order=1)), "H16")
    assert not _errors(_one(step("p", "PACKAGING", order=1, target={"type": "packaging"})), "H16")

    assert _errors(_one(step("q", "PORTION", order=1)), "H24")
    assert not _errors(_one(step("q", "PORTION", order=1, notes="2 scoops")), "H24")

    assert _errors(_one(step("r", "PREP", order=1)), "H25")
    assert not _errors(_one(step("r", "PREP", order=1, techniqueId="cut")), "H25")


def test_pre_service_and_bulk_prep():
    b = _one(step("s1", order=1, notes="x", prepType="pre_service", output=[ref("sauce")]))
    assert _errors(b, "H17")
    stored = step(
        "s1", order=1, notes="x", prepType="pre_service", output=[ref("sauce", to=loc("prep", "cold_storage"))]
    )
    assert not _errors(_one(stored), "H17")

    assert _errors(_one(step("s1", order=1, notes="x", bulkPrep=True, prepType="order_execution")), "H18")
    assert not _errors(_one(step("s1", order=1, notes="x", bulkPrep=True, prepType="pre_service")), "H18")


def test_customization_rules():
    groups = [
        {"optionId": "o1", "type": "OPTIONAL", "valueIds": ["v1"]},
        {"optionId": "o1", "type": "MANDATORY_CHOICE"},
    ]
    doc = step(
        "s1",
        order=1,
        notes="x",
        conditions={"requiresCustomizationValueIds": ["v1", "v9"]},
        overlays=[{"id": "o1", "predicate": {"customizationValueIds": ["v8"]}}],
    )
    b = _one(doc, customizationGroups=groups)

    assert [e.message for e in _errors(b, "H12")] == ["H12: duplicate customizationGroups.optionId: o1"]
    assert len(_errors(b, "H21")) == 1
    h19 = _errors(b, "H19")
    assert len(h19) == 1 and h19[0].message.endswith("valueId v9")
    h20 = _errors(b, "H20")
    assert len(h20) == 1 and "v8" in h20[0].message


def test_overrides_need_a_reason():
    overrides = [
        {"id": "ov1", "ruleId": "H2", "severity": "soft", "reason": "  "},
        {"id": "ov2", "ruleId": "H2", "severity": "soft", "reason": "display order is intentional"},
    ]
    b = _one(step("s1", order=1, notes="x"), validationOverrides=overrides)
    assert len(_errors(b, "H13")) == 1


def test_bom_coverage_only_with_bom_context():
    b = _one(step("s1", order=1, notes="x", target={"type": "bom_component", "bomComponentId": "c2"}))
    assert not _errors(b, "H23")

    bom = [
        BomItem(bom_component_id="c1", type="consumable", name="Cheese"),
        BomItem(bom_component_id="c2", type="consumable", name="Bread"),
        BomItem(bom_component_id="c3", type="tool", name="Tongs"),
    ]
    errs = _errors(b, "H23", ValidationOptions(bom=bom))
    assert [e.message for e in errs] == ["H23: 1 BOM item(s) uncovered: Cheese"]


# ---- Graph structure --------------------------------------------------------


def test_published_build_needs_steps():
    assert _errors(make_build([], status="published"), "H6")
    assert not _errors(make_build([]), "H6")


def test_step_ids_unique_and_dependencies_resolve():
    b = make_build([step("s1", order=1, notes="x"), step("s1", order=2, notes="x", dependsOn=["ghost"])])
    assert [e.message for e in _errors(b, "H7")] == ["H7: duplicate step.id values: s1"]
    assert [e.message for e in _errors(b, "H8")] == ["H8: step s1 dependsOn missing stepId ghost"]


def test_order_index_missing_or_duplicated():
    b = make_build(
        [
            step("s1", order=1, notes="x"),
            step("s2", order=1, notes="x"),
            step("s3", notes="x"),
            step("s4", order=1, notes="x", trackId="side"),
        ]
    )
    assert sorted(e.step_id for e in _errors(b, "H2")) == ["s2", "s3"]


def test_connectivity_warning_reports_percentage():
    b = make_build([step("s1", order=1, notes="x"), step("s2", order=2, notes="x")])
    (err,) = _errors(b, "H26")
    assert err.severity is Severity.SOFT
    assert "only 0% of steps" in err.message


# ---- Kitchen compatibility --------------------------------------------------


def test_work_location_must_exist_at_station():
    b = _one(step("s1", order=1, notes="x", stationId="expo", workLocation={"type": "cold_rail"}))
    assert [e.message for e in _errors(b, "H32")] == ["H32: workLocation 'cold_rail' is not valid for station 'expo'"]


def test_technique_vocabulary():
    wrong_family = _errors(_one(step("s1", "PREP", order=1, techniqueId="toast")), "H33")
    assert wrong_family[0].message == "H33: techniqueId 'toast' belongs to HEAT, not PREP"
    unknown = _errors(_one(step("s1", "PREP", order=1, techniqueId="zzz_unknown")), "H33")
    assert "not in the controlled vocabulary" in unknown[0].message


def test_equipment_must_be_at_station():
    b = _one(step("s1", "HEAT", order=1, notes="x", stationId="garnish", equipment={"applianceId": "fryer"}))
    assert _errors(b, "H35")
    ok = _one(step("s1", "HEAT", order=1, notes="x", stationId="garnish", equipment={"applianceId": "toaster"}))
    assert not _errors(ok, "H35")


def test_ambiguous_work_location_needs_station():
    b = _one(step("s1", order=1, notes="x", workLocation={"type": "work_surface"}))
    assert _errors(b, "H36")
    # equipment offered by a single station pins it
    pinned = step(
        "s1", "HEAT", order=1, notes="x",
        equipment={"applianceId": "pizza_conveyor_oven"}, workLocation={"type": "work_surface"},
    )
    assert not _errors(_one(pinned), "H36")


def test_shared_equipment_needs_station():
    b = _one(step("s1", "HEAT", order=1, notes="x", equipment={"applianceId": "toaster"}))
    assert [e.message for e in _errors(b, "H37")] == [
        "H37: Equipment 'toaster' is available at multiple stations - stationId required"
    ]
    unique = _one(step("s1", "HEAT", order=1, notes="x", equipment={"applianceId": "pizza_conveyor_oven"}))
    assert not _errors(unique, "H37")


# ---- Material flow ----------------------------------------------------------


def test_transfer_steps_are_never_authored():
    assert _errors(_one(step("t", "TRANSFER", order=1)), "H38")


def test_refs_need_sublocations():
    b = _one(
        step(
            "s1",
            "ASSEMBLE",
            order=1,
            input=[ref("a")],
            output=[ref("b", to={"stationId": "fryer", "sublocation": {"type": "equipment"}})],
        )
    )
    messages = [e.message for e in _errors(b, "H40")]
    assert messages == [
        "H40: input[0] requires from.sublocation.type",
        "H40: output[0].to.sublocation.type='equipment' requires equipmentId",
    ]


def test_every_step_outputs_something_unless_excluded():
    assert _errors(_one(step("s1", order=1, notes="x")), "H41")
    assert not _errors(_one(step("s1", order=1, notes="x", exclude=True)), "H41")


def test_ambiguous_ref_locations_need_station():
    b = _one(step("s1", order=1, notes="x", output=[ref("a", to=loc(None, "cold_rail"))]))
    (err,) = _errors(b, "H42")
    assert err.field_path == "output[0].to.stationId"
    stationed = _one(step("s1", order=1, notes="x", stationId="garnish", output=[ref("a", to=loc(None, "cold_rail"))]))
    assert not _errors(stationed, "H42")


def test_every_step_has_a_work_location():
    assert _errors(_one(step("s1", order=1, notes="x")), "H46")
    half = _errors(_one(step("s1", order=1, notes="x", workLocation={"type": "equipment"})), "H46")
    assert half[0].field_path == "workLocation.equipmentId"


def _handoff(from_loc, status="draft"):
    return make_build(
        [
            step("s1", order=1, notes="x", stationId="garnish", output=[ref("slaw", to=loc("garnish", "work_surface"))]),
            step(
                "s2",
                "ASSEMBLE",
                order=2,
                stationId="garnish",
                dependsOn=["s1"],
                input=[ref("slaw", **{"from": from_loc})],
                output=[ref("bowl", to=loc("expo", "window_shelf"))],
            ),
        ],
        status=status,
    )


def test_continuity_is_hard_only_when_published():
    mismatch = loc("garnish", "cold_rail")
    published = _errors(_handoff(mismatch, "published"), "H43")
    assert len(published) == 1 and "(producer: s1)" in published[0].message
    assert not _errors(_handoff(mismatch, "published"), "S22")

    draft = _errors(_handoff(mismatch), "S22")
    assert [e.severity for e in draft] == [Severity.SOFT]
    assert not _errors(_handoff(mismatch), "H43")

    assert not _errors(_handoff(loc("garnish", "work_surface"), "published"), "H43")


def test_cross_station_mismatch_is_info():
    (err,) = _errors(_handoff(loc("toaster", "work_surface")), "S22")
    assert err.severity is Severity.INFO
    assert "A TRANSFER step will be derived" in err.message


def test_missing_producer():
    orphan = step("s1", "ASSEMBLE", order=1, stationId="garnish", input=[ref("ghost", **{"from": loc("garnish", "work_surface")})])
    assert _errors(make_build([orphan]), "S22")
    assert _errors(make_build([orphan], status="published"), "H43")

    from_storage = step("s1", "ASSEMBLE", order=1, stationId="garnish", input=[ref("lettuce", **{"from": loc("garnish", "cold_rail")})])
    assert not _errors(make_build([from_storage]), "S22")


def test_station_without_sublocation():
    b = _one(step("s1", order=1, notes="x", output=[ref("a", to=loc("garnish", None))]))
    assert len(_errors(b, "S15")) == 1


def test_dependency_without_material_flow():
    b = make_build([step("s1", order=1, notes="x", output=[ref("a")]), step("s2", order=2, notes="x", dependsOn=["s1"])])
    assert [e.step_id for e in _errors(b, "S20")] == ["s2"]


def test_cross_station_input_hides_transfer():
    b = _one(step("s1", "ASSEMBLE", order=1, stationId="toaster", input=[ref("a", **{"from": loc("garnish", "work_surface")})]))
    assert _errors(b, "S23")
    storage = _one(step("s1", "ASSEMBLE", order=1, stationId="toaster", input=[ref("a", **{"from": loc("garnish", "cold_rail")})]))
    assert not _errors(storage, "S23")


def test_instruction_names_an_ingredient_source():
    doc = step(
        "s1",
        "ASSEMBLE",
        order=1,
        instruction="Add beans from steam well",
        input=[ref("rice")],
        output=[ref("bowl")],
    )
    assert _errors(_one(doc), "S45")
    doc["output"] = [ref("bowl", **{"from": loc("speed_line", "equipment", "steam_well")})]
    assert not _errors(_one(doc), "S45")


def test_derived_fields_flagged_for_review():
    b = _one(step("s1", "PREP", order=1, techniqueId="cut", stationId="garnish", output=[ref("diced_onion")]))
    assert not _errors(b, "S17")
    normalized = normalize_build(b)
    s17 = _errors(normalized, "S17")
    assert [e.severity for e in s17] == [Severity.INFO]
    assert "'work_surface' was derived" in s17[0].message
    assert _errors(normalized, "S18")


# ---- Workflow patterns ------------------------------------------------------


def _route(*stations):
    return make_build(
        [step(f"s{i}", order=i, notes="x", stationId=st) for i, st in enumerate(stations, start=1)]
    )


def test_grouping_bounce():
    b = _route("garnish", "fryer", "garnish")
    (err,) = _errors(b, "S16a")
    assert err.step_id == "s3"
    assert "'cold_side' in track 'default'" in err.message
    # the station revisit passes through the hot side and is not reported twice
    assert not _errors(b, "S16b")


def test_station_bounce_within_one_grouping():
    b = _route("garnish", "prep", "garnish")
    assert not _errors(b, "S16a")
    (err,) = _errors(b, "S16b")
    assert err.step_id == "s3"


def test_merge_roles():
    missing = _one(step("c", "COMBINE", order=1, input=[ref("rice"), ref("beans")], output=[ref("bowl")]))
    assert "2 are missing role" in _errors(missing, "H29")[0].message

    two_bases = _one(
        step(
            "c",
            "COMBINE",
            order=1,
            input=[ref("rice", role="base"), ref("beans", role="base")],
            output=[ref("bowl")],
        )
    )
    assert "found 2" in _errors(two_bases, "H29")[0].message


def test_lineage_for_one_to_one_transformations():
    doc = step("s1", "HEAT", order=1, input=[ref("raw_patty")], output=[ref("cooked_patty")])
    b = _one(doc, assemblies=[{"id": "raw_patty"}, {"id": "cooked_patty"}])
    assert _errors(b, "H30")
    linked = _one(doc, assemblies=[{"id": "raw_patty"}, {"id": "cooked_patty", "lineage": {"evolvesFrom": "raw_patty"}}])
    assert not _errors(linked, "H30")


def test_generic_assembly_names():
    b = _one(step("s1", order=1, notes="x", output=[ref("step1_v1")]))
    (err,) = _errors(b, "S21")
    assert "step1_v1" in err.message
    assert not _errors(_one(step("s1", order=1, notes="x", output=[ref("pizza_baked_v1")])), "S21")


# ---- Composition ------------------------------------------------------------


def test_requires_builds_hygiene():
    b = make_build(
        [step("s1", order=1, notes="x")],
        requiresBuilds=[{"itemId": "item-b1"}, {"itemId": "sauce"}, {"itemId": "sauce"}],
    )
    # build-level findings sort by message
    assert [e.message for e in _errors(b, "C1")] == [
        "requiresBuilds: duplicate itemId sauce",
        "requiresBuilds: self-dependency is not allowed (itemId=item-b1)",
    ]


def test_external_refs_declared():
    doc = step("s1", order=1, notes="x", input=[{"source": {"type": "external_build", "itemId": "i9"}}])
    assert _errors(_one(doc), "C2")
    assert not _errors(_one(doc, requiresBuilds=[{"itemId": "i9"}]), "C2")


def test_assembly_refs_resolve_and_primary_output():
    doc = step("s1", order=1, notes="x", output=[ref("mystery")])
    b = _one(doc, assemblies=[{"id": "bowl"}], primaryOutputAssemblyId="bowl")
    assert _errors(b, "C3")
    assert not _errors(b, "S6")

    unset = _one(doc, assemblies=[{"id": "bowl"}])
    (err,) = _errors(unset, "S6")
    assert err.severity is Severity.STRONG
    assert "(primaryOutputAssemblyId missing)" in err.message

    # builds that declare no assemblies skip both checks
    assert not _errors(_one(doc), "C3")
    assert not _errors(_one(doc), "S6")
