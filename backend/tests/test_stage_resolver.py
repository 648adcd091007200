from gaterace.domain.enums import FinalClass, Stage
from gaterace.domain.stages import NO_RULE_MATCHED, StageTier, resolve_stages, select_tier
from gaterace.services.stage_resolver import resolve_category

QUALIFICATION_ONLY = StageTier(min_riders=4, enable_qualification=True, final_classes=("BEGINNER",))
WITH_QUARTERS = StageTier(
    min_riders=16,
    enable_qualification=True,
    enable_quarter_final=True,
    final_classes=("BEGINNER", "PRO"),
)


def test_ten_riders_pick_the_smaller_tier():
    resolution = resolve_stages(1, 10, [QUALIFICATION_ONLY, WITH_QUARTERS])
    assert resolution.enable_qualification is True
    assert resolution.enable_quarter_final is False
    assert resolution.source == "rule"


def test_largest_matching_tier_wins():
    assert select_tier([QUALIFICATION_ONLY, WITH_QUARTERS], 16) == WITH_QUARTERS
    assert select_tier([WITH_QUARTERS, QUALIFICATION_ONLY], 40) == WITH_QUARTERS


def test_no_rule_matched_disables_everything():
    resolution = resolve_stages(1, 3, [QUALIFICATION_ONLY])
    assert not resolution.enable_qualification
    assert resolution.final_classes == []
    assert resolution.warning == NO_RULE_MATCHED


def test_override_bypasses_rules():
    resolution = resolve_stages(
        1,
        3,
        [QUALIFICATION_ONLY],
        override={"enableQualification": True, "enableSemiFinal": True, "enabledFinalClasses": ["elite"]},
    )
    assert resolution.source == "override"
    assert resolution.enable_semi_final
    assert resolution.permits(Stage.FINAL, FinalClass.ELITE)
    assert not resolution.permits(Stage.FINAL, FinalClass.PRO)
    assert not resolution.permits(Stage.QUARTER_FINAL)


def test_category_counts_eligible_riders(repo, make_category, make_riders, set_rules):
    category = make_category(year_min=2014, year_max=2015)
    make_riders(10, birth_year=2015)
    make_riders(3, birth_year=2010, start_plate=50)
    set_rules(category.id, QUALIFICATION_ONLY, WITH_QUARTERS)

    resolution = resolve_category(repo, category.id)
    assert resolution.total_riders == 10
    assert resolution.enable_qualification
    assert not resolution.enable_quarter_final
    assert resolution.as_dict()["stages"]["enableQualification"] is True


def test_category_override_column(repo, make_category, make_riders):
    category = make_category(stage_override={"enableQualification": True, "enableQuarterFinal": True})
    make_riders(2)
    resolution = resolve_category(repo, category.id)
    assert resolution.source == "override"
    assert resolution.enable_quarter_final


def test_unknown_category(repo):
    resolution = resolve_category(repo, 404)
    assert not resolution.enable_qualification
    assert resolution.warning
