"""
Grouping constants and runtime settings.

The constants mirror the national CHS-DRG grouping scheme: category names,
the unclassified sentinel, the pre-emptive category order and the names of
the rule-table documents shipped with a scheme release.
"""

import os
from pathlib import Path

from pydantic import BaseModel, Field


# Sentinel returned whenever no category or group rule matches
UNCLASSIFIED = "KBBZ"

# Marker appended to the first ADRG letter for procedure cases that landed
# in a medical group
QY_MARKER = "QY"

# Pre-emptive categories, evaluated in this order before the categories the
# principal diagnosis declares
TRAUMA_CATEGORY = "MDCA"
NEONATE_CATEGORY = "MDCP"
CATCH_ALL_CATEGORY = "MDCY"
MULTI_REGION_CATEGORY = "MDCZ"
PRE_EMPTIVE_CATEGORIES = (
    TRAUMA_CATEGORY,
    NEONATE_CATEGORY,
    CATCH_ALL_CATEGORY,
    MULTI_REGION_CATEGORY,
)

# Sex-restricted categories (female / male reproductive system)
FEMALE_CATEGORY = "MDCN"
MALE_CATEGORY = "MDCM"

# MDCA has no principal-diagnosis table; it is validated by probing these
# ADRGs unless the ordering table lists its own candidates
DEFAULT_TRAUMA_ADRGS = (
    "AA1", "AA2", "AB1", "AC1", "AD1", "AE1",
    "AF1", "AG1", "AG2", "AG3", "AH1", "AH2",
)

# Newborns: at most 29 days old
NEONATE_MAX_AGE = 29 / 365

# Body-region diagnosis sheets used by the multi-region check
REGION_SHEETS = (
    "belly_dis_sheet",
    "body_spine_dis_sheet",
    "chest_dis_sheet",
    "down_limb_dis_sheet",
    "genital_dis_sheet",
    "head_neck_dis_sheet",
    "pelvis_dis_sheet",
    "up_limb_dis_sheet",
    "urinary_dis_sheet",
)
MULTI_REGION_THRESHOLD = 2

# Second ADRG letter bands
SURGICAL_BAND = frozenset("ABCDEFGHIJ")
OPERATIVE_BAND = frozenset("KLMNOPQ")
MEDICAL_BAND = frozenset("RSTUVWXYZ")

# Rule-table documents, keyed by the RuleTables field they populate
TABLE_FILES = {
    "code_sets": "adrg_dis_opt_sheet.json",
    "diagnosis_categories": "main_dis_sheet.json",
    "catch_all_diagnoses": "mdcy_dis_sheet.txt",
    "region_diagnoses": "mdcz_dis_sheet.json",
    "adrg_rule_types": "adrg_in_condition.json",
    "category_adrgs": "mdc_sub_adrg.json",
    "adrg_drgs": "adrg_drg_name_sheet.json",
    "severity": "ccmcc_sheet.json",
    "exclusions": "exclude_sheet.json",
    "valid_procedures": "all_opt_sheet.txt",
    "valid_diagnoses": "all_dis_sheet.txt",
}

DEFAULT_SEPARATOR = "|"
DATA_DIR_ENV = "CHS_DRG_DATA_DIR"
DEFAULT_DATA_DIR = "data"


def default_data_directory() -> Path:
    """Data directory from the environment, falling back to ./data."""
    return Path(os.environ.get(DATA_DIR_ENV, DEFAULT_DATA_DIR))


class GrouperSettings(BaseModel):
    """
    Runtime settings for a grouping run.

    These are collected once (from the command line or by the caller) and
    used to build the grouper and the case reader.
    """
    data_directory: Path = Field(
        default_factory=default_data_directory,
        description="Directory holding the rule-table documents"
    )
    strict_rule_types: bool = Field(
        default=True,
        description="Reject unknown rule-type names at load time instead of "
                    "compiling them to a rule that never matches"
    )
    separator: str = Field(
        default=DEFAULT_SEPARATOR,
        min_length=1,
        max_length=1,
        description="Separator for multi-valued case fields"
    )
