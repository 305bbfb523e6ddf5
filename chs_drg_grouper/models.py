"""
Data models for CHS-DRG grouping.

This module defines the case record submitted for grouping and the result
produced for it.
"""

from enum import Enum, IntEnum
from typing import Any, FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from .config import (
    MEDICAL_BAND,
    OPERATIVE_BAND,
    QY_MARKER,
    SURGICAL_BAND,
    UNCLASSIFIED,
)


class Sex(IntEnum):
    """Patient sex as coded on the case record."""
    FEMALE = 0
    MALE = 1


class CCLevel(str, Enum):
    """Complication/Comorbidity severity level."""
    NONE = "NONE"
    CC = "CC"
    MCC = "MCC"


class GroupType(str, Enum):
    """Kind of group an ADRG code belongs to, read from its second letter."""
    SURGICAL = "SURGICAL"
    OPERATIVE = "OPERATIVE"
    MEDICAL = "MEDICAL"
    QY = "QY"
    UNCLASSIFIED = "UNCLASSIFIED"
    OTHER = "OTHER"


def is_qy(adrg: str) -> bool:
    """True for a QY-reclassified ADRG such as 'FQY'."""
    return adrg[1:3] == QY_MARKER


def group_type_of(adrg: str) -> GroupType:
    """Classify an ADRG code by its second letter."""
    if adrg == UNCLASSIFIED:
        return GroupType.UNCLASSIFIED
    if is_qy(adrg):
        return GroupType.QY

    band = adrg[1:2]
    if band in SURGICAL_BAND:
        return GroupType.SURGICAL
    if band in OPERATIVE_BAND:
        return GroupType.OPERATIVE
    if band in MEDICAL_BAND:
        return GroupType.MEDICAL
    return GroupType.OTHER


class DrgCase(BaseModel):
    """
    A clinical case record submitted for grouping.

    The record is immutable. The full diagnosis and procedure sets are
    derived once when the record is built and are what the rule tables are
    matched against.
    """
    model_config = ConfigDict(frozen=True)

    case_id: str = Field(..., description="Case (admission) identifier")
    principal_diagnosis: str = Field(
        default="",
        description="Principal diagnosis code; empty when missing"
    )
    principal_procedure: str = Field(
        default="",
        description="Principal procedure code; empty for non-surgical cases"
    )
    other_diagnoses: Tuple[str, ...] = Field(
        default=(),
        description="Secondary diagnosis codes, in record order"
    )
    other_procedures: Tuple[str, ...] = Field(
        default=(),
        description="Secondary procedure codes, in record order"
    )
    sex: Sex = Field(..., description="0 = female, 1 = male")
    age: float = Field(
        ...,
        ge=0,
        description="Age in years; infants use days / 365"
    )
    weight: int = Field(default=0, description="Weight as recorded on the case")

    _all_diagnoses: FrozenSet[str] = PrivateAttr(default_factory=frozenset)
    _all_procedures: FrozenSet[str] = PrivateAttr(default_factory=frozenset)
    _other_diagnosis_set: FrozenSet[str] = PrivateAttr(default_factory=frozenset)

    @field_validator('case_id', 'principal_diagnosis', 'principal_procedure')
    @classmethod
    def strip_code(cls, v: str) -> str:
        return v.strip()

    @field_validator('other_diagnoses', 'other_procedures', mode='before')
    @classmethod
    def normalize_code_list(cls, v: Any) -> Tuple[str, ...]:
        """Strip codes and drop blank entries."""
        if v is None:
            return ()
        if isinstance(v, str):
            raise ValueError("Code lists must be sequences, not a single string")
        return tuple(str(code).strip() for code in v if code and str(code).strip())

    def model_post_init(self, __context: Any) -> None:
        other_dis = frozenset(self.other_diagnoses)
        other_opt = frozenset(self.other_procedures)

        self._other_diagnosis_set = other_dis
        self._all_diagnoses = (
            other_dis | {self.principal_diagnosis}
            if self.principal_diagnosis else other_dis
        )
        self._all_procedures = (
            other_opt | {self.principal_procedure}
            if self.principal_procedure else other_opt
        )

    @property
    def all_diagnoses(self) -> FrozenSet[str]:
        return self._all_diagnoses

    @property
    def all_procedures(self) -> FrozenSet[str]:
        return self._all_procedures

    @property
    def other_diagnosis_set(self) -> FrozenSet[str]:
        return self._other_diagnosis_set

    @property
    def has_principal_diagnosis(self) -> bool:
        return bool(self.principal_diagnosis)

    @property
    def has_surgery(self) -> bool:
        """Whether the case carries a principal procedure."""
        return bool(self.principal_procedure)


class GroupingResult(BaseModel):
    """
    Output of grouping a single case.

    Contains the final code and the intermediate decisions that led to it.
    """
    case_id: str = Field(..., description="Identifier of the grouped case")
    mdc: str = Field(
        ...,
        description="Major Diagnostic Category that claimed the case, or KBBZ"
    )
    adrg: str = Field(
        ...,
        description="Final ADRG after QY reclassification, or KBBZ"
    )
    drg: str = Field(
        ...,
        description="Final DRG code; equals the ADRG when no refinement applies"
    )
    group_type: GroupType = Field(
        ...,
        description="Surgical / operative / medical band of the ADRG"
    )
    severity: Optional[CCLevel] = Field(
        default=None,
        description="Qualifying CC/MCC severity when the DRG was refined"
    )

    @property
    def is_unclassified(self) -> bool:
        return self.drg == UNCLASSIFIED
