"""
CHS-DRG Grouper

A table-driven grouping engine that assigns China Healthcare Security
diagnosis-related groups (CHS-DRG) to inpatient case records: Major
Diagnostic Category, then ADRG, then the severity-refined DRG.
"""

from .models import DrgCase, GroupingResult, Sex, CCLevel, GroupType
from .tables import RuleTables, load_rule_tables
from .rules import RuleTableError
from .grouper import DRGGrouper
from .batch import CaseParseError, build_case, read_cases, group_case_file

__version__ = "1.0.0"
__all__ = [
    "DrgCase",
    "GroupingResult",
    "Sex",
    "CCLevel",
    "GroupType",
    "RuleTables",
    "load_rule_tables",
    "RuleTableError",
    "DRGGrouper",
    "CaseParseError",
    "build_case",
    "read_cases",
    "group_case_file",
]
