"""
Case ingestion and batch grouping.

Case files are CSV with one case per row and the columns

    id, main_dis, main_opt, other_dis, other_opt, sex, age, weight

where other_dis and other_opt hold several codes joined by a separator
("|" by default). The grouped output keeps every input column as read and
appends a `code` column holding the final DRG.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

import pandas as pd
from pydantic import ValidationError

from .config import DEFAULT_SEPARATOR
from .grouper import DRGGrouper
from .models import DrgCase

logger = logging.getLogger(__name__)

CASE_COLUMNS = [
    "id", "main_dis", "main_opt", "other_dis", "other_opt", "sex", "age", "weight",
]
CODE_COLUMN = "code"


class CaseParseError(ValueError):
    """Raw case fields could not be turned into a case record."""


def split_codes(text: Optional[str], separator: str = DEFAULT_SEPARATOR) -> List[str]:
    """Split a multi-valued field, dropping blanks."""
    if not text:
        return []
    return [code.strip() for code in text.split(separator) if code.strip()]


def _clean_number(text: Any) -> str:
    return str(text).replace(",", "").replace(" ", "").strip()


def parse_int(text: Any, field: str) -> int:
    cleaned = _clean_number(text)
    try:
        return int(cleaned)
    except ValueError:
        raise CaseParseError(f"Field '{field}' is not an integer: {text!r}") from None


def parse_age(text: Any) -> float:
    """Parse an age in years; a blank age is read as 0."""
    cleaned = _clean_number(text)
    if not cleaned:
        return 0.0
    try:
        return float(cleaned)
    except ValueError:
        raise CaseParseError(f"Field 'age' is not a number: {text!r}") from None


def build_case(
    case_id: str,
    main_dis: str,
    main_opt: str,
    other_dis: str,
    other_opt: str,
    sex: Any,
    age: Any,
    weight: Any,
    separator: str = DEFAULT_SEPARATOR
) -> DrgCase:
    """
    Build a case record from raw text fields.

    Args:
        case_id: Case identifier
        main_dis: Principal diagnosis code (may be blank)
        main_opt: Principal procedure code (may be blank)
        other_dis: Other diagnoses joined by the separator
        other_opt: Other procedures joined by the separator
        sex: 0 (female) or 1 (male)
        age: Age in years; infants as days / 365
        weight: Weight as recorded
        separator: Separator for the multi-valued fields

    Returns:
        DrgCase ready for grouping

    Raises:
        CaseParseError: If a field cannot be parsed or validated
    """
    try:
        return DrgCase(
            case_id=case_id,
            principal_diagnosis=main_dis or "",
            principal_procedure=main_opt or "",
            other_diagnoses=split_codes(other_dis, separator),
            other_procedures=split_codes(other_opt, separator),
            sex=parse_int(sex, "sex"),
            age=parse_age(age),
            weight=parse_int(weight, "weight"),
        )
    except ValidationError as e:
        raise CaseParseError(f"Invalid case {case_id!r}: {e}") from e


def read_case_frame(input_path: Union[str, Path]) -> pd.DataFrame:
    """
    Read a case CSV as text, leaving blanks as empty strings.

    Raises:
        FileNotFoundError: If the file does not exist
        CaseParseError: If the file cannot be parsed or required columns are missing
    """
    input_path = Path(input_path)
    if not input_path.exists():
        raise FileNotFoundError(f"Case file not found: {input_path}")

    try:
        df = pd.read_csv(input_path, dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise CaseParseError(f"Could not read case file {input_path}: {e}") from e

    missing = [column for column in CASE_COLUMNS if column not in df.columns]
    if missing:
        raise CaseParseError(f"Case file {input_path} is missing columns: {', '.join(missing)}")

    logger.info(f"Loaded {len(df)} rows from {input_path}")
    return df


def cases_from_frame(df: pd.DataFrame, separator: str = DEFAULT_SEPARATOR) -> List[DrgCase]:
    """Build case records from a case frame, in row order."""
    cases = []
    for row_number, row in enumerate(df[CASE_COLUMNS].itertuples(index=False), start=1):
        try:
            cases.append(build_case(*row, separator=separator))
        except CaseParseError as e:
            raise CaseParseError(f"Row {row_number}: {e}") from e
    return cases


def read_cases(input_path: Union[str, Path], separator: str = DEFAULT_SEPARATOR) -> List[DrgCase]:
    """Read every case in a case CSV."""
    return cases_from_frame(read_case_frame(input_path), separator)


def append_codes(df: pd.DataFrame, codes: Sequence[str]) -> pd.DataFrame:
    """Return a copy of the case frame with the final codes appended."""
    if len(codes) != len(df):
        raise ValueError(f"Got {len(codes)} codes for {len(df)} case rows")
    grouped = df.copy()
    grouped[CODE_COLUMN] = list(codes)
    return grouped


def group_case_file(
    grouper: DRGGrouper,
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    separator: str = DEFAULT_SEPARATOR
) -> int:
    """
    Group every case in a CSV file and write the results.

    The output has one row per input row, in input order.

    Args:
        grouper: Grouper holding the rule tables
        input_path: Case CSV to read
        output_path: CSV to write
        separator: Separator for multi-valued fields

    Returns:
        Number of cases grouped
    """
    df = read_case_frame(input_path)
    cases = cases_from_frame(df, separator)
    results = grouper.assign_drgs(cases)

    grouped = append_codes(df, [result.drg for result in results])
    grouped.to_csv(output_path, index=False)
    logger.info(f"Saved {len(grouped)} grouped cases to {output_path}")
    return len(grouped)
