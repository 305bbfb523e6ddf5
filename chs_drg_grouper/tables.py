"""
Rule tables for a CHS-DRG grouping scheme.

A scheme release is distributed as a directory of JSON and comma-separated
text documents. They are loaded once into an immutable RuleTables bundle,
which is then shared by reference across every case grouped in a run.

Usage:
    from chs_drg_grouper.tables import load_rule_tables

    tables = load_rule_tables("data")
    rule = tables.rules["FR1"]
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Union

from .config import (
    CATCH_ALL_CATEGORY,
    DEFAULT_TRAUMA_ADRGS,
    FEMALE_CATEGORY,
    MALE_CATEGORY,
    MULTI_REGION_CATEGORY,
    NEONATE_CATEGORY,
    REGION_SHEETS,
    TABLE_FILES,
    TRAUMA_CATEGORY,
)
from .models import CCLevel
from .rules import AdrgRule, RuleTableError, compile_rules

logger = logging.getLogger(__name__)

# Trailing-digit layouts of an ADRG that splits into several DRGs
SPLIT_TIER_LAYOUTS = (
    frozenset({1, 5}),
    frozenset({3, 5}),
    frozenset({1, 3, 5}),
)


@dataclass(frozen=True)
class SeverityEntry:
    """
    CC/MCC designation of a secondary diagnosis.

    exclusion_label names the exclusion list the diagnosis belongs to; a
    principal diagnosis whose exclusion-table entry carries the same label
    suppresses this diagnosis as a CC/MCC.
    """

    level: CCLevel
    exclusion_label: str


@dataclass(frozen=True)
class RuleTables:
    """
    Immutable bundle of every table a grouping run consults.

    Build with RuleTables.build() or load_rule_tables(); both freeze the
    inputs and compile the ADRG rules.
    """

    code_sets: Mapping[str, FrozenSet[str]]
    diagnosis_categories: Mapping[str, Tuple[str, ...]]
    catch_all_diagnoses: FrozenSet[str]
    region_diagnoses: Mapping[str, FrozenSet[str]]
    adrg_rule_types: Mapping[str, str]
    category_adrgs: Mapping[str, Tuple[str, ...]]
    adrg_drgs: Mapping[str, Tuple[str, ...]]
    severity: Mapping[str, SeverityEntry]
    exclusions: Mapping[str, str]
    valid_procedures: FrozenSet[str]
    valid_diagnoses: FrozenSet[str]
    rules: Mapping[str, AdrgRule]

    @classmethod
    def build(
        cls,
        code_sets: Mapping[str, Iterable[str]],
        diagnosis_categories: Mapping[str, Iterable[str]],
        catch_all_diagnoses: Iterable[str],
        region_diagnoses: Mapping[str, Iterable[str]],
        adrg_rule_types: Mapping[str, str],
        category_adrgs: Mapping[str, Iterable[str]],
        adrg_drgs: Mapping[str, Iterable[str]],
        severity: Mapping[str, Any],
        exclusions: Mapping[str, str],
        valid_procedures: Iterable[str],
        valid_diagnoses: Iterable[str] = (),
        strict: bool = True
    ) -> "RuleTables":
        """
        Freeze raw table data, compile the ADRG rules and validate the bundle.

        Severity entries may be given as SeverityEntry objects, as
        [exclusion_label, level] pairs, or as a bare level string ("MCC"/"CC").
        A bare level is its own exclusion label.

        Raises:
            RuleTableError: If the tables are malformed or inconsistent
        """
        frozen_code_sets = _freeze_sets(code_sets)
        frozen_regions = _freeze_sets(region_diagnoses)
        frozen_valid_procedures = _freeze_codes("valid_procedures", valid_procedures)

        missing_regions = [sheet for sheet in REGION_SHEETS if sheet not in frozen_regions]
        if missing_regions:
            raise RuleTableError(
                f"Region table is missing sheets: {', '.join(missing_regions)}"
            )
        extra_regions = sorted(set(frozen_regions) - set(REGION_SHEETS))
        if extra_regions:
            raise RuleTableError(
                f"Region table has unknown sheets: {', '.join(extra_regions)}"
            )

        frozen_rule_types = MappingProxyType(dict(adrg_rule_types))
        rules = compile_rules(
            frozen_rule_types,
            frozen_code_sets,
            frozen_valid_procedures,
            frozen_regions,
            strict=strict,
        )

        tables = cls(
            code_sets=frozen_code_sets,
            diagnosis_categories=_freeze_sequences(diagnosis_categories),
            catch_all_diagnoses=_freeze_codes("catch_all_diagnoses", catch_all_diagnoses),
            region_diagnoses=frozen_regions,
            adrg_rule_types=frozen_rule_types,
            category_adrgs=_freeze_sequences(category_adrgs),
            adrg_drgs=_freeze_sequences(adrg_drgs),
            severity=MappingProxyType({
                code: _severity_entry(code, entry) for code, entry in severity.items()
            }),
            exclusions=_freeze_labels(exclusions),
            valid_procedures=frozen_valid_procedures,
            valid_diagnoses=_freeze_codes("valid_diagnoses", valid_diagnoses),
            rules=MappingProxyType(rules),
        )
        tables.validate()
        return tables

    def trauma_candidates(self) -> Tuple[str, ...]:
        """ADRGs tried to validate the trauma (MDCA) category."""
        return self.category_adrgs.get(TRAUMA_CATEGORY, DEFAULT_TRAUMA_ADRGS)

    def candidates_for(self, category: str) -> Tuple[str, ...]:
        """Ordered candidate ADRGs for a category."""
        if category == TRAUMA_CATEGORY:
            return self.trauma_candidates()
        try:
            return self.category_adrgs[category]
        except KeyError:
            raise RuleTableError(f"No ADRG ordering declared for category {category}") from None

    def rule_for(self, adrg: str) -> AdrgRule:
        try:
            return self.rules[adrg]
        except KeyError:
            raise RuleTableError(f"No rule type declared for ADRG {adrg}") from None

    def drgs_for(self, adrg: str) -> Tuple[str, ...]:
        try:
            return self.adrg_drgs[adrg]
        except KeyError:
            raise RuleTableError(f"No DRG codes registered for ADRG {adrg}") from None

    def validate(self) -> None:
        """
        Check cross-table consistency.

        Every category a case can be claimed into must have a candidate list,
        every candidate ADRG must have a compiled rule, and every candidate
        must register a DRG code set with a usable tier layout.

        Raises:
            RuleTableError: On the first inconsistency found
        """
        claimable = {NEONATE_CATEGORY, CATCH_ALL_CATEGORY, MULTI_REGION_CATEGORY}
        for categories in self.diagnosis_categories.values():
            claimable.update(categories)
        # MDCA uses its own candidates; MDCN/MDCM cases are claimed as MDCY
        claimable -= {TRAUMA_CATEGORY, FEMALE_CATEGORY, MALE_CATEGORY}

        for category in sorted(claimable):
            if category not in self.category_adrgs:
                raise RuleTableError(f"No ADRG ordering declared for category {category}")

        candidate_lists = dict(self.category_adrgs)
        candidate_lists[TRAUMA_CATEGORY] = self.trauma_candidates()

        for category, adrgs in candidate_lists.items():
            for adrg in adrgs:
                if adrg not in self.rules:
                    raise RuleTableError(
                        f"ADRG {adrg} listed under {category} has no rule type"
                    )
                _check_drg_layout(adrg, self.adrg_drgs.get(adrg))


def _check_drg_layout(adrg: str, drgs: Optional[Tuple[str, ...]]) -> None:
    if not drgs:
        raise RuleTableError(f"No DRG codes registered for ADRG {adrg}")

    tiers = []
    for drg in drgs:
        if not drg or not drg[-1].isdigit():
            raise RuleTableError(f"DRG code '{drg}' under ADRG {adrg} has no tier digit")
        tiers.append(int(drg[-1]))

    # A single code is used regardless of its tier digit
    if len(tiers) == 1:
        return
    if len(set(tiers)) != len(tiers) or frozenset(tiers) not in SPLIT_TIER_LAYOUTS:
        raise RuleTableError(
            f"ADRG {adrg} registers DRG codes {list(drgs)} with an unsupported tier layout"
        )


def _freeze_codes(name: str, codes: Iterable[str]) -> FrozenSet[str]:
    if isinstance(codes, str):
        raise RuleTableError(f"Expected a list of codes for '{name}', got a string")
    return frozenset(codes)


def _freeze_sets(table: Mapping[str, Iterable[str]]) -> Mapping[str, FrozenSet[str]]:
    return MappingProxyType({key: _freeze_codes(key, codes) for key, codes in table.items()})


def _freeze_labels(table: Mapping[str, str]) -> Mapping[str, str]:
    for key, label in table.items():
        if not isinstance(label, str):
            raise RuleTableError(f"Exclusion label for '{key}' must be a string, got {label!r}")
    return MappingProxyType(dict(table))


def _freeze_sequences(table: Mapping[str, Iterable[str]]) -> Mapping[str, Tuple[str, ...]]:
    frozen = {}
    for key, values in table.items():
        if isinstance(values, str):
            raise RuleTableError(f"Expected a list of codes for '{key}', got a string")
        frozen[key] = tuple(values)
    return MappingProxyType(frozen)


def _severity_entry(code: str, entry: Any) -> SeverityEntry:
    if isinstance(entry, SeverityEntry):
        return entry
    try:
        if isinstance(entry, str):
            level = CCLevel(entry)
            label = entry
        else:
            label, level_name = entry
            level = CCLevel(level_name)
    except (TypeError, ValueError):
        raise RuleTableError(f"Malformed severity entry for {code}: {entry!r}") from None

    if level is CCLevel.NONE:
        raise RuleTableError(f"Severity entry for {code} must be CC or MCC")
    return SeverityEntry(level=level, exclusion_label=label)


def _load_json(file_path: Path) -> Dict:
    """Load a JSON table document."""
    if not file_path.exists():
        raise FileNotFoundError(f"Required rule table not found: {file_path}")

    with open(file_path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise RuleTableError(f"Invalid JSON in {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise RuleTableError(f"Expected a JSON object in {file_path}")
    return data


def _load_code_list(file_path: Path) -> FrozenSet[str]:
    """Load a comma-separated code list."""
    if not file_path.exists():
        raise FileNotFoundError(f"Required rule table not found: {file_path}")

    with open(file_path, 'r', encoding='utf-8') as f:
        content = f.read()
    return frozenset(code.strip() for code in content.split(',') if code.strip())


def load_rule_tables(data_directory: Union[str, Path], strict: bool = True) -> RuleTables:
    """
    Load a grouping scheme from its table documents.

    Args:
        data_directory: Directory holding the documents named in TABLE_FILES
        strict: Reject unknown rule-type names (see rules.compile_rule)

    Returns:
        A validated, immutable RuleTables bundle

    Raises:
        FileNotFoundError: If a table document is missing
        RuleTableError: If a document is malformed or the tables disagree
    """
    data_dir = Path(data_directory)
    logger.info(f"Loading rule tables from {data_dir}")

    raw: Dict[str, Any] = {}
    for field_name, filename in TABLE_FILES.items():
        path = data_dir / filename
        if filename.endswith(".txt"):
            raw[field_name] = _load_code_list(path)
        else:
            raw[field_name] = _load_json(path)
        logger.info(f"Loaded {len(raw[field_name])} entries from {filename}")

    tables = RuleTables.build(strict=strict, **raw)
    logger.info(f"Compiled {len(tables.rules)} ADRG rules across "
                f"{len(tables.category_adrgs)} categories")
    return tables
