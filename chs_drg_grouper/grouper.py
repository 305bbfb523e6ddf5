"""
CHS-DRG Grouper

This module ties the three grouping stages together. A case is first placed
in a Major Diagnostic Category (MDC). Within that category it is placed in an
ADRG, with QY reclassification applied. The ADRG is then refined into the
final DRG by complication/comorbidity severity.

Usage:
    from chs_drg_grouper import DRGGrouper, DrgCase, Sex

    grouper = DRGGrouper(data_directory="data")

    result = grouper.assign_drg(DrgCase(
        case_id="0001",
        principal_diagnosis="I21.000",
        other_diagnoses=["J96.000"],
        sex=Sex.MALE,
        age=65,
    ))

    print(f"DRG: {result.drg} (ADRG {result.adrg}, {result.mdc})")
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .adrg import apply_qy, resolve_adrg
from .config import UNCLASSIFIED
from .drg import refine_drg, refine_with_severity
from .mdc import resolve_mdc
from .models import DrgCase, GroupingResult, group_type_of
from .tables import RuleTables, load_rule_tables

logger = logging.getLogger(__name__)


class DRGGrouper:
    """
    CHS-DRG Grouper for assigning diagnosis-related groups to case records.

    The grouper holds one immutable RuleTables bundle and is otherwise
    stateless, so a single instance can group any number of cases in any
    order.
    """

    def __init__(
        self,
        data_directory: Optional[Union[str, Path]] = None,
        tables: Optional[RuleTables] = None,
        strict_rule_types: bool = True
    ):
        """
        Initialize the grouper.

        Args:
            data_directory: Directory containing the rule-table documents.
                            Ignored if tables is given.
            tables: Optional pre-built rule tables
            strict_rule_types: Reject unknown rule-type names when loading

        Raises:
            ValueError: If neither tables nor a data directory is given
        """
        if tables is not None:
            self.tables = tables
        elif data_directory is not None:
            self.tables = load_rule_tables(data_directory, strict=strict_rule_types)
        else:
            raise ValueError("Either tables or data_directory is required")

    def resolve_mdc(self, case: DrgCase) -> str:
        return resolve_mdc(case, self.tables)

    def resolve_adrg(self, case: DrgCase, mdc: str) -> str:
        """Resolve the ADRG within a category, including QY reclassification."""
        adrg = resolve_adrg(case, mdc, self.tables)
        return apply_qy(case, adrg, self.tables)

    def refine_drg(self, case: DrgCase, adrg: str) -> str:
        return refine_drg(case, adrg, self.tables)

    def assign_drg(self, case: DrgCase) -> GroupingResult:
        """
        Group a single case.

        This is the main entry point for grouping.

        Args:
            case: The case record

        Returns:
            GroupingResult with the category, ADRG and final DRG

        Raises:
            RuleTableError: If the rule tables lack an entry this case needs
        """
        if (case.has_principal_diagnosis and self.tables.valid_diagnoses
                and case.principal_diagnosis not in self.tables.valid_diagnoses):
            logger.warning(f"Case {case.case_id}: principal diagnosis "
                           f"{case.principal_diagnosis} is not a valid diagnosis code")

        mdc = self.resolve_mdc(case)
        adrg = self.resolve_adrg(case, mdc)
        drg, severity = refine_with_severity(case, adrg, self.tables)
        group_type = group_type_of(adrg)

        if drg == UNCLASSIFIED:
            logger.debug(f"Case {case.case_id}: unclassified")

        return GroupingResult(
            case_id=case.case_id,
            mdc=mdc,
            adrg=adrg,
            drg=drg,
            group_type=group_type,
            severity=severity,
        )

    def assign_drgs(self, cases: Iterable[DrgCase]) -> List[GroupingResult]:
        """Group several cases, returning results in input order."""
        results = [self.assign_drg(case) for case in cases]
        logger.info(f"Grouped {len(results)} cases")
        return results

    def group_code(self, case: DrgCase) -> str:
        """Final DRG code for a case."""
        return self.assign_drg(case).drg
