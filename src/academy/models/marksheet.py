"""Marksheet template, score and generated marksheet models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import Field

from academy.models.field_catalog import CamelModel


class MatchStrategy(StrEnum):
    NAME = "name"
    ID = "id"
    FUZZY = "fuzzy"
    INDIRECT = "indirect"


class MarksheetStatus(StrEnum):
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    PUBLISHED = "published"


class TemplateSubjectSlot(CamelModel):
    """Named subject slot of a marksheet template."""

    id: Optional[str] = None
    name: str = ""
    max_marks: float = 100


class MarksheetTemplate(CamelModel):
    template_id: str
    template_name: str = "Untitled Template"
    institution_name: Optional[str] = None
    subtitle: Optional[str] = None
    logo: Optional[str] = None
    subjects: list[TemplateSubjectSlot] = Field(default_factory=list)


class ScoreRecord(CamelModel):
    """One holder's score for one test of one subject."""

    holder_id: str
    subject_id: str
    marks: float = 0
    max_marks: float = 100


class AggregatedScore(CamelModel):
    """Summed marks of every test a holder sat for one subject."""

    subject_id: str
    subject_name: str
    marks: float = 0
    max_marks: float = 0

    @property
    def percentage(self) -> float:
        if not self.max_marks:
            return 0.0
        return round(self.marks / self.max_marks * 100, 2)


class ResolvedSlot(CamelModel):
    id: Optional[str] = None
    name: str = ""
    max_marks: float = 100
    obtained_marks: Optional[float] = None
    strategy: Optional[MatchStrategy] = None

    @property
    def is_filled(self) -> bool:
        return self.obtained_marks is not None


class StudentMarksDraft(CamelModel):
    """Pre-filled marks of one student, editable before generation."""

    student_id: str
    student_name: str = ""
    student_class: str = ""
    roll_number: str = ""
    subjects: list[ResolvedSlot] = Field(default_factory=list)
    remarks: str = ""

    @property
    def is_complete(self) -> bool:
        return all(slot.is_filled for slot in self.subjects)


class GeneratedMarksheet(CamelModel):
    marksheet_id: str
    template_id: str
    class_id: str
    student_id: str
    student_name: str = ""
    student_class: str = ""
    roll_number: str = ""
    logo: Optional[str] = None
    institution_name: Optional[str] = None
    subtitle: Optional[str] = None
    subjects: list[ResolvedSlot] = Field(default_factory=list)
    total_max_marks: float = 0
    total_obtained_marks: float = 0
    percentage: float = 0
    grade: str = ""
    result: str = ""
    remarks: str = ""
    status: MarksheetStatus = MarksheetStatus.PENDING_REVIEW
    batch: str = ""
    created_by: str = ""
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
