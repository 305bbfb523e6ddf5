"""
MDC resolution.

Decides which Major Diagnostic Category claims a case. Four pre-emptive
categories are tried first, in a fixed order, before the categories the
principal-diagnosis table declares for the case.
"""

import logging
from typing import List, Optional

from .config import (
    CATCH_ALL_CATEGORY,
    FEMALE_CATEGORY,
    MALE_CATEGORY,
    MULTI_REGION_CATEGORY,
    NEONATE_CATEGORY,
    NEONATE_MAX_AGE,
    PRE_EMPTIVE_CATEGORIES,
    TRAUMA_CATEGORY,
    UNCLASSIFIED,
)
from .models import DrgCase, Sex
from .rules import spans_multiple_regions
from .tables import RuleTables

logger = logging.getLogger(__name__)


def first_matching_adrg(case: DrgCase, adrgs, tables: RuleTables) -> str:
    """Return the first ADRG whose rule matches the case, or KBBZ."""
    for adrg in adrgs:
        if tables.rule_for(adrg).matches(case):
            return adrg
    return UNCLASSIFIED


def category_priority(case: DrgCase, tables: RuleTables) -> List[str]:
    """Pre-emptive categories followed by those of the principal diagnosis."""
    declared = tables.diagnosis_categories.get(case.principal_diagnosis, ())
    if not declared:
        logger.debug(f"Case {case.case_id}: principal diagnosis "
                     f"{case.principal_diagnosis} has no declared category")
    return list(PRE_EMPTIVE_CATEGORIES) + list(declared)


def _primary_category(case: DrgCase, tables: RuleTables) -> Optional[str]:
    declared = tables.diagnosis_categories.get(case.principal_diagnosis, ())
    return declared[0] if declared else None


def is_trauma(case: DrgCase, tables: RuleTables) -> bool:
    # MDCA has no diagnosis table; it claims a surgical case when one of its
    # ADRGs does
    if not case.has_surgery:
        return False
    return first_matching_adrg(case, tables.trauma_candidates(), tables) != UNCLASSIFIED


def is_neonate(case: DrgCase) -> bool:
    # No diagnosis-table check for MDCP
    return case.age <= NEONATE_MAX_AGE


def is_catch_all(case: DrgCase, tables: RuleTables) -> bool:
    return not tables.catch_all_diagnoses.isdisjoint(case.all_diagnoses)


def is_multi_region(case: DrgCase, tables: RuleTables) -> bool:
    return spans_multiple_regions(case.all_diagnoses, tables.region_diagnoses)


def claiming_category(case: DrgCase, category: str, tables: RuleTables) -> Optional[str]:
    """
    Decide whether a single category claims the case.

    Args:
        case: Case being grouped
        category: Category name from the priority list
        tables: Rule tables

    Returns:
        The category the case is claimed into, or None. This differs from
        the category asked about only for the sex-restricted categories,
        whose cases are claimed into the catch-all category.
    """
    if category == TRAUMA_CATEGORY:
        return category if is_trauma(case, tables) else None
    if category == NEONATE_CATEGORY:
        return category if is_neonate(case) else None
    if category == CATCH_ALL_CATEGORY:
        return category if is_catch_all(case, tables) else None
    if category == MULTI_REGION_CATEGORY:
        return category if is_multi_region(case, tables) else None

    primary = _primary_category(case, tables)

    # Sex-restricted diagnoses are redirected to MDCY, as the scheme tables
    # are observed to do
    if category == FEMALE_CATEGORY:
        if case.sex == Sex.FEMALE and primary == FEMALE_CATEGORY:
            return CATCH_ALL_CATEGORY
        return None
    if category == MALE_CATEGORY:
        if case.sex == Sex.MALE and primary == MALE_CATEGORY:
            return CATCH_ALL_CATEGORY
        return None

    return category if primary == category else None


def resolve_mdc(case: DrgCase, tables: RuleTables) -> str:
    """
    Resolve the Major Diagnostic Category for a case.

    Args:
        case: Case to classify
        tables: Rule tables for the grouping scheme

    Returns:
        The claiming category name, or KBBZ when the case has no principal
        diagnosis or no category claims it
    """
    if not case.has_principal_diagnosis:
        return UNCLASSIFIED

    for category in category_priority(case, tables):
        claimed = claiming_category(case, category, tables)
        if claimed is not None:
            logger.debug(f"Case {case.case_id}: claimed by {claimed} (checked {category})")
            return claimed

    return UNCLASSIFIED
