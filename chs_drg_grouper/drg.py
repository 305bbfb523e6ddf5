"""
DRG refinement by complication/comorbidity severity.

An ADRG registers one to three DRG codes. The trailing digit of each code
names its severity tier:

    9 = sole code (no split)
    1 = with major complication/comorbidity (MCC)
    3 = with complication/comorbidity (CC)
    5 = without CC/MCC
"""

import logging
from typing import Dict, Optional, Tuple

from .config import UNCLASSIFIED
from .models import CCLevel, DrgCase, is_qy
from .tables import RuleTables

logger = logging.getLogger(__name__)


def qualifying_severity(case: DrgCase, tables: RuleTables) -> CCLevel:
    """
    Determine the highest CC/MCC level among the case's other diagnoses.

    A secondary diagnosis does not count when the exclusion table suppresses
    its exclusion label for the case's principal diagnosis.

    Args:
        case: Case being grouped
        tables: Rule tables holding the severity and exclusion tables

    Returns:
        CCLevel.MCC, CCLevel.CC or CCLevel.NONE
    """
    excluded_label = tables.exclusions.get(case.principal_diagnosis)
    level = CCLevel.NONE

    for dx in case.other_diagnoses:
        entry = tables.severity.get(dx)
        if entry is None:
            continue
        if entry.exclusion_label == excluded_label:
            logger.debug(f"Case {case.case_id}: {entry.level.value} {dx} excluded "
                         f"by principal diagnosis {case.principal_diagnosis}")
            continue

        if entry.level is CCLevel.MCC:
            return CCLevel.MCC
        level = CCLevel.CC

    return level


def _drgs_by_tier(adrg: str, tables: RuleTables) -> Dict[int, str]:
    return {int(drg[-1]): drg for drg in tables.drgs_for(adrg)}


def select_drg(drgs_by_tier: Dict[int, str], severity: CCLevel) -> str:
    """
    Select the DRG code for a severity from an ADRG's tiered codes.

    With two codes the pair of tiers is read from the registered codes:
    a 1/5 split sends CC cases to 5, a 3/5 split sends MCC and CC cases to 3.
    """
    if len(drgs_by_tier) == 1:
        return next(iter(drgs_by_tier.values()))

    if len(drgs_by_tier) == 2:
        if severity is CCLevel.MCC:
            return drgs_by_tier.get(1, drgs_by_tier.get(3))
        if severity is CCLevel.CC:
            return drgs_by_tier[5] if 1 in drgs_by_tier else drgs_by_tier[3]
        return drgs_by_tier[5]

    if severity is CCLevel.MCC:
        return drgs_by_tier[1]
    if severity is CCLevel.CC:
        return drgs_by_tier[3]
    return drgs_by_tier[5]


def refine_with_severity(
    case: DrgCase,
    adrg: str,
    tables: RuleTables
) -> Tuple[str, Optional[CCLevel]]:
    """
    Refine a final ADRG into a DRG code, returning the severity it used.

    Args:
        case: Case being grouped
        adrg: ADRG after QY reclassification
        tables: Rule tables

    Returns:
        (drg, severity). KBBZ and QY codes are returned as they are, with no
        severity.

    Raises:
        RuleTableError: If the ADRG registers no DRG codes
    """
    if adrg == UNCLASSIFIED or is_qy(adrg):
        return adrg, None

    severity = qualifying_severity(case, tables)
    drg = select_drg(_drgs_by_tier(adrg, tables), severity)
    logger.debug(f"Case {case.case_id}: ADRG {adrg} with {severity.value} -> DRG {drg}")
    return drg, severity


def refine_drg(case: DrgCase, adrg: str, tables: RuleTables) -> str:
    """Refine a final ADRG into a DRG code."""
    drg, _ = refine_with_severity(case, adrg, tables)
    return drg
