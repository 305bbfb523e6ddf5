"""
Test CHS-DRG Grouper

This test suite validates grouping end to end against the rule tables in
data/.
"""

import pytest
from pathlib import Path

from chs_drg_grouper import (
    CCLevel,
    DRGGrouper,
    DrgCase,
    GroupType,
    RuleTableError,
    Sex,
)


def make_case(**fields):
    fields.setdefault("case_id", "T-001")
    fields.setdefault("sex", Sex.MALE)
    fields.setdefault("age", 65)
    return DrgCase(**fields)


def test_grouper_initialization():
    """Test that the grouper initializes correctly with data files."""
    grouper = DRGGrouper(data_directory=Path(__file__).parent / "data")
    assert grouper is not None
    assert len(grouper.tables.rules) > 0
    assert len(grouper.tables.category_adrgs) > 0
    assert len(grouper.tables.adrg_drgs) > 0


def test_grouper_requires_tables_or_directory():
    with pytest.raises(ValueError):
        DRGGrouper()


def test_grouper_missing_data_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        DRGGrouper(data_directory=tmp_path / "missing")


def test_missing_principal_diagnosis_is_unclassified(grouper):
    result = grouper.assign_drg(make_case(
        other_diagnoses=["J96.000"],
        principal_procedure="33.6x00",
    ))

    assert result.mdc == "KBBZ"
    assert result.adrg == "KBBZ"
    assert result.drg == "KBBZ"
    assert result.group_type == GroupType.UNCLASSIFIED
    assert result.severity is None
    assert result.is_unclassified


def test_ami_with_mcc(grouper):
    """Three-way split: an MCC selects tier 1."""
    result = grouper.assign_drg(make_case(
        principal_diagnosis="I21.000",
        other_diagnoses=["J96.000", "E87.100"],
    ))

    assert result.mdc == "MDCF"
    assert result.adrg == "FR1"
    assert result.drg == "FR11"
    assert result.group_type == GroupType.MEDICAL
    assert result.severity == CCLevel.MCC


def test_ami_with_cc(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="I21.000",
        other_diagnoses=["E87.100"],
    ))

    assert result.drg == "FR13"
    assert result.severity == CCLevel.CC


def test_ami_without_cc_mcc(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="I21.000",
        other_diagnoses=["Z99.999"],
    ))

    assert result.drg == "FR15"
    assert result.severity == CCLevel.NONE


def test_excluded_mcc_does_not_count(grouper):
    """I21.100 excludes the J96.000 label, leaving no qualifying diagnosis."""
    result = grouper.assign_drg(make_case(
        principal_diagnosis="I21.100",
        other_diagnoses=["J96.000"],
    ))

    assert result.adrg == "FR1"
    assert result.drg == "FR15"
    assert result.severity == CCLevel.NONE


def test_excluded_mcc_leaves_remaining_cc(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="I21.100",
        other_diagnoses=["J96.000", "E87.100"],
    ))

    assert result.drg == "FR13"


@pytest.mark.parametrize("other_diagnoses,expected", [
    (["N17.900"], "FR21"),
    (["E87.100"], "FR25"),
    ([], "FR25"),
])
def test_mcc_split_pair(grouper, other_diagnoses, expected):
    """A 1/5 pair sends CC cases to tier 5."""
    result = grouper.assign_drg(make_case(
        principal_diagnosis="I50.900",
        other_diagnoses=other_diagnoses,
    ))

    assert result.adrg == "FR2"
    assert result.drg == expected


@pytest.mark.parametrize("other_diagnoses,expected", [
    (["J96.000"], "FM13"),
    (["D62.x00"], "FM13"),
    ([], "FM15"),
])
def test_cc_split_pair(grouper, other_diagnoses, expected):
    """A 3/5 pair sends MCC and CC cases to tier 3."""
    result = grouper.assign_drg(make_case(
        principal_diagnosis="I21.000",
        principal_procedure="36.0601",
        other_diagnoses=other_diagnoses,
    ))

    assert result.mdc == "MDCF"
    assert result.adrg == "FM1"
    assert result.group_type == GroupType.OPERATIVE
    assert result.drg == expected


def test_exclusion_of_heart_failure_cc(grouper):
    """I50.000 suppresses I50.900 as a CC."""
    result = grouper.assign_drg(make_case(
        principal_diagnosis="I50.000",
        other_diagnoses=["I50.900"],
    ))

    assert result.drg == "FR25"
    assert result.severity == CCLevel.NONE


def test_single_code_adrg(grouper):
    """An ADRG with one code ignores severity."""
    result = grouper.assign_drg(make_case(
        principal_diagnosis="K80.200",
        other_diagnoses=["J96.000"],
    ))

    assert result.adrg == "GR1"
    assert result.drg == "GR19"


def test_multi_condition_rule(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="I21.000",
        principal_procedure="36.1001",
    ))

    assert result.adrg == "FB1"
    assert result.drg == "FB19"
    assert result.group_type == GroupType.SURGICAL


def test_principal_procedure_in_medical_group_is_qy(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="J18.900",
        principal_procedure="34.0401",
        other_diagnoses=["J96.000"],
    ))

    assert result.mdc == "MDCE"
    assert result.adrg == "EQY"
    assert result.drg == "EQY"
    assert result.group_type == GroupType.QY
    assert result.severity is None


def test_unlisted_procedure_is_not_qy(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="J18.900",
        principal_procedure="99.9999",
    ))

    assert result.adrg == "ER1"
    assert result.drg == "ER15"


def test_qy_after_procedure_rules_fail(grouper):
    """Only one of the two CB procedures is present, so the medical group wins."""
    result = grouper.assign_drg(make_case(
        principal_diagnosis="H25.900",
        principal_procedure="13.4100",
    ))

    assert result.mdc == "MDCC"
    assert result.drg == "CQY"


def test_two_procedure_sets(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="H25.900",
        principal_procedure="13.4100",
        other_procedures=["13.7000"],
    ))

    assert result.adrg == "CB2"
    assert result.drg == "CB29"


def test_trauma_category_claims_surgical_case(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="S06.000",
        principal_procedure="33.6x00",
    ))

    assert result.mdc == "MDCA"
    assert result.adrg == "AA1"
    assert result.drg == "AA19"


def test_trauma_category_needs_surgery(grouper):
    result = grouper.assign_drg(make_case(principal_diagnosis="S06.000"))

    assert result.mdc == "MDCB"
    assert result.adrg == "KBBZ"


def test_trauma_procedure_pair(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="I21.000",
        principal_procedure="31.1x00",
        other_procedures=["96.7201"],
        other_diagnoses=["J96.000"],
    ))

    assert result.mdc == "MDCA"
    assert result.drg == "AH11"


def test_neonate_at_age_limit(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="P07.300",
        age=29 / 365,
    ))

    assert result.mdc == "MDCP"
    assert result.drg == "PR19"


def test_neonate_category_stops_search(grouper):
    """A newborn with an adult diagnosis stays in MDCP without a group."""
    result = grouper.assign_drg(make_case(
        principal_diagnosis="I21.000",
        age=29 / 365,
    ))

    assert result.mdc == "MDCP"
    assert result.drg == "KBBZ"


def test_just_past_neonate_age(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="I21.000",
        age=0.08,
    ))

    assert result.mdc == "MDCF"
    assert result.drg == "FR15"


def test_neonate_diagnosis_past_neonate_age(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="P07.300",
        age=0.08,
    ))

    assert result.mdc == "KBBZ"
    assert result.drg == "KBBZ"


def test_catch_all_diagnosis_claims_case(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="B20.000",
        other_diagnoses=["B20.100"],
    ))

    assert result.mdc == "MDCY"
    assert result.drg == "YC19"


def test_catch_all_secondary_diagnosis(grouper):
    """A catch-all secondary diagnosis pre-empts the principal diagnosis category."""
    result = grouper.assign_drg(make_case(
        principal_diagnosis="I21.000",
        other_diagnoses=["Z21.x00"],
    ))

    assert result.mdc == "MDCY"
    assert result.drg == "KBBZ"


def test_multiple_regions(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="S32.000",
        other_diagnoses=["S72.000"],
    ))

    assert result.mdc == "MDCZ"
    assert result.drg == "ZZ19"


def test_multiple_regions_with_procedure(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="S06.000",
        principal_procedure="81.0200",
        other_diagnoses=["S27.000"],
    ))

    assert result.mdc == "MDCZ"
    assert result.drg == "ZB19"


def test_single_region(grouper):
    result = grouper.assign_drg(make_case(principal_diagnosis="S32.000"))

    assert result.mdc == "MDCI"
    assert result.drg == "IR19"


def test_female_reproductive_diagnosis_goes_to_catch_all(grouper):
    result = grouper.assign_drg(make_case(
        principal_diagnosis="N80.000",
        sex=Sex.FEMALE,
        age=34,
    ))

    assert result.mdc == "MDCY"
    assert result.drg == "KBBZ"


def test_female_diagnosis_on_male_case(grouper):
    result = grouper.assign_drg(make_case(principal_diagnosis="N80.000"))

    assert result.mdc == "KBBZ"


def test_male_reproductive_diagnosis_goes_to_catch_all(grouper):
    result = grouper.assign_drg(make_case(principal_diagnosis="N40.x00"))
    assert result.mdc == "MDCY"

    result = grouper.assign_drg(make_case(principal_diagnosis="N40.x00", sex=Sex.FEMALE))
    assert result.mdc == "KBBZ"


def test_unknown_principal_diagnosis(grouper):
    result = grouper.assign_drg(make_case(principal_diagnosis="X99.999"))

    assert result.mdc == "KBBZ"
    assert result.drg == "KBBZ"


def test_grouping_is_deterministic(grouper):
    case = make_case(
        principal_diagnosis="I50.900",
        other_diagnoses=["E87.100", "N17.900"],
    )

    first = grouper.assign_drg(case)
    second = grouper.assign_drg(case)

    assert first == second
    assert grouper.group_code(case) == "FR21"


def test_other_diagnosis_order_does_not_matter(grouper):
    a = make_case(principal_diagnosis="I21.000", other_diagnoses=["E87.100", "J96.000"])
    b = make_case(principal_diagnosis="I21.000", other_diagnoses=["J96.000", "E87.100"])

    assert grouper.group_code(a) == grouper.group_code(b) == "FR11"


def test_assign_drgs_preserves_order(grouper):
    cases = [
        make_case(case_id="1", principal_diagnosis="I21.000"),
        make_case(case_id="2"),
        make_case(case_id="3", principal_diagnosis="K80.200"),
    ]

    results = grouper.assign_drgs(cases)

    assert [r.case_id for r in results] == ["1", "2", "3"]
    assert [r.drg for r in results] == ["FR15", "KBBZ", "GR19"]


def test_stage_methods(grouper):
    case = make_case(principal_diagnosis="J18.900", principal_procedure="34.0401")

    assert grouper.resolve_mdc(case) == "MDCE"
    assert grouper.resolve_adrg(case, "MDCE") == "EQY"
    assert grouper.refine_drg(case, "EQY") == "EQY"
    assert grouper.refine_drg(case, "ER1") == "ER15"


def test_refine_unknown_adrg_raises(grouper):
    with pytest.raises(RuleTableError):
        grouper.refine_drg(make_case(principal_diagnosis="I21.000"), "XX1")


def test_invalid_principal_diagnosis_is_logged(grouper, caplog):
    with caplog.at_level("WARNING"):
        grouper.assign_drg(make_case(principal_diagnosis="X99.999"))

    assert "X99.999" in caplog.text
