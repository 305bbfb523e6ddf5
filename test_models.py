"""
Test case and result models.
"""

import pytest
from pydantic import ValidationError

from chs_drg_grouper import DrgCase, GroupType, Sex
from chs_drg_grouper.models import group_type_of, is_qy


def test_derived_sets():
    case = DrgCase(
        case_id="1",
        principal_diagnosis="I21.000",
        principal_procedure="36.0601",
        other_diagnoses=["E87.100", "J96.000"],
        other_procedures=["39.6100"],
        sex=Sex.MALE,
        age=60,
    )

    assert case.all_diagnoses == frozenset({"I21.000", "E87.100", "J96.000"})
    assert case.all_procedures == frozenset({"36.0601", "39.6100"})
    assert case.other_diagnosis_set == frozenset({"E87.100", "J96.000"})
    assert case.has_principal_diagnosis
    assert case.has_surgery


def test_derived_sets_ignore_order():
    a = DrgCase(case_id="1", principal_diagnosis="I21.000",
                other_diagnoses=["E87.100", "J96.000"], sex=0, age=60)
    b = DrgCase(case_id="1", principal_diagnosis="I21.000",
                other_diagnoses=["J96.000", "E87.100", "J96.000"], sex=0, age=60)

    assert a.all_diagnoses == b.all_diagnoses


def test_blank_codes_are_dropped():
    case = DrgCase(
        case_id=" 7 ",
        principal_diagnosis=" ",
        other_diagnoses=["", " E87.100 ", None],
        sex=1,
        age=30,
    )

    assert case.case_id == "7"
    assert case.principal_diagnosis == ""
    assert case.other_diagnoses == ("E87.100",)
    assert case.all_diagnoses == frozenset({"E87.100"})
    assert not case.has_principal_diagnosis
    assert not case.has_surgery


def test_code_list_must_not_be_a_string():
    with pytest.raises(ValidationError):
        DrgCase(case_id="1", other_diagnoses="E87.100", sex=1, age=30)


def test_invalid_sex_and_age():
    with pytest.raises(ValidationError):
        DrgCase(case_id="1", sex=2, age=30)
    with pytest.raises(ValidationError):
        DrgCase(case_id="1", sex=1, age=-1)


def test_case_is_frozen():
    case = DrgCase(case_id="1", principal_diagnosis="I21.000", sex=1, age=30)

    with pytest.raises(ValidationError):
        case.principal_diagnosis = "I50.000"


@pytest.mark.parametrize("adrg,expected", [
    ("FB1", GroupType.SURGICAL),
    ("FM1", GroupType.OPERATIVE),
    ("FR1", GroupType.MEDICAL),
    ("FQY", GroupType.QY),
    ("KBBZ", GroupType.UNCLASSIFIED),
])
def test_group_type_of(adrg, expected):
    assert group_type_of(adrg) == expected


def test_is_qy():
    assert is_qy("EQY")
    assert not is_qy("ER1")
    assert not is_qy("KBBZ")
