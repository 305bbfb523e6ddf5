"""
ADRG entry rules.

Each ADRG in a grouping scheme declares one rule type by name. The names are
compiled once, when the rule tables are loaded, into rule objects that hold
the exact code sets they test against. Grouping a case is then a matter of
calling ``rule.matches(case)``; no table keys are built or looked up per case.

Usage:
    rule = compile_rule("FR1", "is_contain_main_dis", code_sets,
                        valid_procedures, region_sets)
    if rule.matches(case):
        ...
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, ClassVar, Dict, FrozenSet, Mapping, Tuple

from .config import MULTI_REGION_THRESHOLD, REGION_SHEETS
from .models import DrgCase

logger = logging.getLogger(__name__)


class RuleTableError(ValueError):
    """A rule table is missing an entry, or is inconsistent with another table."""


def spans_multiple_regions(
    diagnoses: FrozenSet[str],
    region_sets: Mapping[str, FrozenSet[str]]
) -> bool:
    """
    Check whether diagnoses fall into more than one body region.

    One region is not enough; at least two of the region sheets must be hit.
    """
    hits = 0
    for sheet in REGION_SHEETS:
        if not region_sets[sheet].isdisjoint(diagnoses):
            hits += 1
            if hits >= MULTI_REGION_THRESHOLD:
                return True
    return False


@dataclass(frozen=True)
class AdrgRule:
    """Base class for the entry rule of a single ADRG."""

    adrg: str

    # Rules that test a procedure cannot match a case without a principal
    # procedure
    requires_surgery: ClassVar[bool] = False

    def matches(self, case: DrgCase) -> bool:
        if self.requires_surgery and not case.has_surgery:
            return False
        return self._matches(case)

    def _matches(self, case: DrgCase) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class MainDiagnosisRule(AdrgRule):
    """Principal diagnosis is in the ADRG's diagnosis list."""

    diagnoses: FrozenSet[str] = frozenset()

    def _matches(self, case: DrgCase) -> bool:
        return case.principal_diagnosis in self.diagnoses


@dataclass(frozen=True)
class MainProcedureRule(AdrgRule):
    """Principal procedure is in the ADRG's procedure list."""

    procedures: FrozenSet[str] = frozenset()
    requires_surgery: ClassVar[bool] = True

    def _matches(self, case: DrgCase) -> bool:
        return case.principal_procedure in self.procedures


@dataclass(frozen=True)
class MainDiagnosisAndProcedureRule(AdrgRule):
    """Principal diagnosis and principal procedure are both listed."""

    diagnoses: FrozenSet[str] = frozenset()
    procedures: FrozenSet[str] = frozenset()
    requires_surgery: ClassVar[bool] = True

    def _matches(self, case: DrgCase) -> bool:
        return (case.principal_diagnosis in self.diagnoses
                and case.principal_procedure in self.procedures)


@dataclass(frozen=True)
class DiagnosisRule(AdrgRule):
    """Principal diagnosis is listed and so is at least one other diagnosis."""

    diagnoses: FrozenSet[str] = frozenset()

    def _matches(self, case: DrgCase) -> bool:
        return (case.principal_diagnosis in self.diagnoses
                and not self.diagnoses.isdisjoint(case.other_diagnosis_set))


@dataclass(frozen=True)
class OtherDiagnosisRule(AdrgRule):
    """At least one other diagnosis is listed."""

    diagnoses: FrozenSet[str] = frozenset()

    def _matches(self, case: DrgCase) -> bool:
        return not self.diagnoses.isdisjoint(case.other_diagnosis_set)


@dataclass(frozen=True)
class TwoProcedureSetsRule(AdrgRule):
    """The case's procedures hit both procedure lists."""

    first: FrozenSet[str] = frozenset()
    second: FrozenSet[str] = frozenset()
    requires_surgery: ClassVar[bool] = True

    def _matches(self, case: DrgCase) -> bool:
        return (not self.first.isdisjoint(case.all_procedures)
                and not self.second.isdisjoint(case.all_procedures))


@dataclass(frozen=True)
class AnyValidProcedureRule(AdrgRule):
    """Any of the case's procedures is in the global valid-procedure list."""

    procedures: FrozenSet[str] = frozenset()
    requires_surgery: ClassVar[bool] = True

    def _matches(self, case: DrgCase) -> bool:
        return not self.procedures.isdisjoint(case.all_procedures)


@dataclass(frozen=True)
class EitherMainProcedureRule(AdrgRule):
    """Principal procedure is in any one of several procedure lists."""

    procedure_lists: Tuple[FrozenSet[str], ...] = ()
    requires_surgery: ClassVar[bool] = True

    def _matches(self, case: DrgCase) -> bool:
        return any(case.principal_procedure in procedures
                   for procedures in self.procedure_lists)


@dataclass(frozen=True)
class DiagnosisAndMainProcedureRule(AdrgRule):
    """Any diagnosis is listed and the principal procedure is listed."""

    diagnoses: FrozenSet[str] = frozenset()
    procedures: FrozenSet[str] = frozenset()
    requires_surgery: ClassVar[bool] = True

    def _matches(self, case: DrgCase) -> bool:
        return (not self.diagnoses.isdisjoint(case.all_diagnoses)
                and case.principal_procedure in self.procedures)


@dataclass(frozen=True)
class MultiRegionRule(AdrgRule):
    """Diagnoses span at least two body regions."""

    region_sets: Mapping[str, FrozenSet[str]] = field(default_factory=dict)

    def _matches(self, case: DrgCase) -> bool:
        return spans_multiple_regions(case.all_diagnoses, self.region_sets)


@dataclass(frozen=True)
class UnmatchableRule(AdrgRule):
    """Stand-in for an unrecognized rule type; never matches."""

    rule_type: str = ""

    def _matches(self, case: DrgCase) -> bool:
        return False


class ConditionKind(str, Enum):
    """What part of the case a condition tests against its code list."""
    PRINCIPAL_DIAGNOSIS = "PDX"
    OTHER_DIAGNOSIS = "ODX"
    PRINCIPAL_PROCEDURE = "PPROC"
    ANY_PROCEDURE = "APROC"


@dataclass(frozen=True)
class Condition:
    """One membership test inside a multi-condition branch."""

    kind: ConditionKind
    codes: FrozenSet[str]

    def holds(self, case: DrgCase) -> bool:
        if self.kind is ConditionKind.PRINCIPAL_DIAGNOSIS:
            return case.principal_diagnosis in self.codes
        if self.kind is ConditionKind.OTHER_DIAGNOSIS:
            return not self.codes.isdisjoint(case.other_diagnosis_set)
        if self.kind is ConditionKind.PRINCIPAL_PROCEDURE:
            return case.principal_procedure in self.codes
        return not self.codes.isdisjoint(case.all_procedures)


@dataclass(frozen=True)
class ConditionSetRule(AdrgRule):
    """
    Ordered OR of AND-branches.

    The first branch whose conditions all hold makes the rule match.
    """

    rule_type: str = ""
    branches: Tuple[Tuple[Condition, ...], ...] = ()
    requires_surgery: ClassVar[bool] = True

    def _matches(self, case: DrgCase) -> bool:
        return any(all(condition.holds(case) for condition in branch)
                   for branch in self.branches)


_PDX = ConditionKind.PRINCIPAL_DIAGNOSIS
_ODX = ConditionKind.OTHER_DIAGNOSIS
_PPROC = ConditionKind.PRINCIPAL_PROCEDURE
_APROC = ConditionKind.ANY_PROCEDURE

# Branch layouts of the multi-condition rule types: (condition kind, slice
# suffix appended to the ADRG code)
MULTI_CONDITION_LAYOUTS: Dict[str, Tuple[Tuple[Tuple[ConditionKind, str], ...], ...]] = {
    "is_contain_multi_opt1": (
        ((_PDX, "_main_dis_list"), (_PPROC, "_main_opt_list1")),
        ((_PPROC, "_main_opt_list2"),),
        ((_APROC, "_other_opt_list3"), (_APROC, "_other_opt_list4")),
    ),
    "is_contain_multi_opt2": (
        ((_PDX, "_main_dis_list"), (_APROC, "_other_opt_list1"),
         (_APROC, "_other_opt_list2")),
        ((_PDX, "_main_dis_list"), (_APROC, "_other_opt_list1"),
         (_APROC, "_other_opt_list3"), (_APROC, "_other_opt_list4")),
        ((_PDX, "_main_dis_list"), (_APROC, "_other_opt_list4"),
         (_APROC, "_other_opt_list5")),
    ),
    # The principal procedure is part of all procedures, so a single
    # any-procedure test covers "main or other procedure in list 2"
    "is_contain_multi_opt3": (
        ((_PDX, "_main_dis_list"), (_PPROC, "_main_opt_list1")),
        ((_PDX, "_main_dis_list"), (_APROC, "_other_opt_list2")),
    ),
    "is_contain_multi_opt4": (
        ((_PDX, "_main_dis_list1"), (_PPROC, "_main_opt_list")),
        ((_PDX, "_main_dis_list2"), (_ODX, "_other_dis_list"),
         (_PPROC, "_main_opt_list")),
    ),
    "is_contain_multi_opt5": (
        ((_PDX, "_main_dis_list"), (_ODX, "_other_dis_list1"),
         (_PPROC, "_main_opt_list")),
        ((_ODX, "_other_dis_list2"), (_PPROC, "_main_opt_list")),
    ),
    "is_contain_other_dis_or_other_opt1_and_other_opt2": (
        ((_ODX, "_other_dis_list"), (_APROC, "_other_opt_list2")),
        ((_APROC, "_other_opt_list1"), (_APROC, "_other_opt_list2")),
    ),
}


class _SliceReader:
    """Resolves the named code-set slices a rule type needs for one ADRG."""

    def __init__(self, adrg: str, rule_type: str,
                 code_sets: Mapping[str, FrozenSet[str]]):
        self.adrg = adrg
        self.rule_type = rule_type
        self.code_sets = code_sets

    def key(self, key: str) -> FrozenSet[str]:
        try:
            return self.code_sets[key]
        except KeyError:
            raise RuleTableError(
                f"ADRG {self.adrg} uses rule type '{self.rule_type}' which "
                f"requires code set '{key}', but it is not in the table"
            ) from None

    def own(self, suffix: str = "") -> FrozenSet[str]:
        return self.key(self.adrg + suffix)


_RuleBuilder = Callable[[str, _SliceReader, FrozenSet[str], Mapping[str, FrozenSet[str]]], AdrgRule]


def _two_cb_lists(adrg, slices, valid, regions):
    # Both CB rule types test the CB4 and CB5 lists, as the scheme tables do
    return TwoProcedureSetsRule(adrg, first=slices.key("CB4"), second=slices.key("CB5"))


RULE_BUILDERS: Dict[str, _RuleBuilder] = {
    "is_contain_main_dis": lambda adrg, s, valid, regions: MainDiagnosisRule(
        adrg, diagnoses=s.own()),
    "is_contain_main_opt": lambda adrg, s, valid, regions: MainProcedureRule(
        adrg, procedures=s.own()),
    "is_contain_main_dis_and_main_opt_simultaneously":
        lambda adrg, s, valid, regions: MainDiagnosisAndProcedureRule(
            adrg,
            diagnoses=s.own("_contain_main_dis_list"),
            procedures=s.own("_contain_main_opt_list"),
        ),
    "is_contain_dis": lambda adrg, s, valid, regions: DiagnosisRule(
        adrg, diagnoses=s.own()),
    "is_contain_opt_simultaneously":
        lambda adrg, s, valid, regions: TwoProcedureSetsRule(
            adrg, first=s.own("_normal_list"), second=s.own("_other_list")),
    "is_contain_all_opt": lambda adrg, s, valid, regions: AnyValidProcedureRule(
        adrg, procedures=valid),
    "is_contain_other_dis": lambda adrg, s, valid, regions: OtherDiagnosisRule(
        adrg, diagnoses=s.own()),
    "is_contain_cb4_opt_and_cb5_opt": _two_cb_lists,
    "is_contain_cb5_opt_and_cb6_opt": _two_cb_lists,
    "is_contain_multi_wb_opt":
        lambda adrg, s, valid, regions: EitherMainProcedureRule(
            adrg,
            procedure_lists=(
                s.key("WB1_main_opt_list"),
                s.key("WB2_main_opt_list"),
                s.key("WB3_main_opt_list"),
            ),
        ),
    "is_dis_and_main_opt":
        lambda adrg, s, valid, regions: DiagnosisAndMainProcedureRule(
            adrg,
            diagnoses=s.own("_main_dis_list"),
            procedures=s.own("_main_opt_list"),
        ),
    "is_mdcz_dis": lambda adrg, s, valid, regions: MultiRegionRule(
        adrg, region_sets=regions),
}


def _build_condition_set(adrg: str, rule_type: str,
                         slices: _SliceReader) -> ConditionSetRule:
    branches = tuple(
        tuple(Condition(kind, slices.own(suffix)) for kind, suffix in branch)
        for branch in MULTI_CONDITION_LAYOUTS[rule_type]
    )
    return ConditionSetRule(adrg, rule_type=rule_type, branches=branches)


def known_rule_types() -> FrozenSet[str]:
    return frozenset(RULE_BUILDERS) | frozenset(MULTI_CONDITION_LAYOUTS)


def compile_rule(
    adrg: str,
    rule_type: str,
    code_sets: Mapping[str, FrozenSet[str]],
    valid_procedures: FrozenSet[str],
    region_sets: Mapping[str, FrozenSet[str]],
    strict: bool = True
) -> AdrgRule:
    """
    Compile one ADRG's rule-type name into a rule object.

    Args:
        adrg: ADRG code, e.g. 'FR1'
        rule_type: Rule-type name declared for the ADRG
        code_sets: ADRG membership table (composite key -> codes)
        valid_procedures: Global valid-procedure set
        region_sets: The nine body-region diagnosis sets
        strict: Reject unknown rule-type names instead of compiling them to
                an UnmatchableRule

    Returns:
        The compiled AdrgRule

    Raises:
        RuleTableError: If a required code set is missing, or the rule type
                        is unknown and strict is set
    """
    if not isinstance(rule_type, str):
        raise RuleTableError(f"ADRG {adrg} declares a rule type that is not a name: {rule_type!r}")

    slices = _SliceReader(adrg, rule_type, code_sets)

    if rule_type in MULTI_CONDITION_LAYOUTS:
        return _build_condition_set(adrg, rule_type, slices)

    builder = RULE_BUILDERS.get(rule_type)
    if builder is None:
        if strict:
            raise RuleTableError(f"ADRG {adrg} declares unknown rule type '{rule_type}'")
        logger.warning(f"ADRG {adrg} declares unknown rule type '{rule_type}'; "
                       f"it will never match")
        return UnmatchableRule(adrg, rule_type=rule_type)

    return builder(adrg, slices, valid_procedures, region_sets)


def compile_rules(
    adrg_rule_types: Mapping[str, str],
    code_sets: Mapping[str, FrozenSet[str]],
    valid_procedures: FrozenSet[str],
    region_sets: Mapping[str, FrozenSet[str]],
    strict: bool = True
) -> Dict[str, AdrgRule]:
    """Compile every ADRG in the rule-type table."""
    return {
        adrg: compile_rule(adrg, rule_type, code_sets, valid_procedures,
                           region_sets, strict=strict)
        for adrg, rule_type in adrg_rule_types.items()
    }
