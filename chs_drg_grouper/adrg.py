"""
ADRG resolution and QY reclassification.
"""

import logging

from .config import MEDICAL_BAND, QY_MARKER, UNCLASSIFIED
from .mdc import first_matching_adrg
from .models import DrgCase
from .tables import RuleTables

logger = logging.getLogger(__name__)


def resolve_adrg(case: DrgCase, category: str, tables: RuleTables) -> str:
    """
    Pick the ADRG for a case within its category.

    Candidates are tried in the category's declared order and the first one
    whose entry rule matches wins.

    Args:
        case: Case being grouped
        category: Category returned by resolve_mdc
        tables: Rule tables

    Returns:
        The matched ADRG code, or KBBZ
    """
    if category == UNCLASSIFIED:
        return UNCLASSIFIED

    adrg = first_matching_adrg(case, tables.candidates_for(category), tables)
    logger.debug(f"Case {case.case_id}: {category} -> ADRG {adrg}")
    return adrg


def apply_qy(case: DrgCase, adrg: str, tables: RuleTables) -> str:
    """
    Flag a surgical case that landed in a medical group.

    When the case's principal procedure is a valid procedure but its ADRG is
    in the medical band (second letter R-Z), the ADRG becomes
    '<first letter>QY'. Anything else is returned unchanged.
    """
    if adrg == UNCLASSIFIED or not case.has_surgery:
        return adrg
    if case.principal_procedure not in tables.valid_procedures:
        return adrg
    if adrg[1:2] not in MEDICAL_BAND:
        return adrg

    reclassified = adrg[0] + QY_MARKER
    logger.debug(f"Case {case.case_id}: procedure {case.principal_procedure} "
                 f"in medical group {adrg}, reclassified as {reclassified}")
    return reclassified
