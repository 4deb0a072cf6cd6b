"""MarksheetService — drafts, generation and review of per-student marksheets."""

from __future__ import annotations

import logging
import math
import secrets
import string
from collections.abc import Callable
from datetime import date, datetime, timezone
from typing import Any, Optional

from academy.core.exceptions import (
    IncompleteMarksError,
    MarksheetNotFoundError,
    TemplateNotFoundError,
    ValidationRejectedError,
)
from academy.core.protocols import IDocumentStore
from academy.core.types import Document
from academy.models.marksheet import (
    GeneratedMarksheet,
    MarksheetStatus,
    MarksheetTemplate,
    ResolvedSlot,
    StudentMarksDraft,
)
from academy.persistence import (
    GENERATED_MARKSHEETS,
    MARKS,
    MARKSHEET_TEMPLATES,
    STUDENTS,
    SUBJECTS,
)
from academy.services.template_matcher import (
    SubjectDirectory,
    TemplateMatcher,
    aggregate_scores,
    flatten_mark_documents,
)

logger = logging.getLogger(__name__)

PASS_PERCENTAGE = 40.0

# (minimum percentage, grade), checked top to bottom.
GRADE_SCALE: list[tuple[float, str]] = [
    (90.0, "A+"),
    (80.0, "A"),
    (70.0, "B+"),
    (60.0, "B"),
    (50.0, "C"),
    (40.0, "D"),
]

_BASE36 = string.digits + string.ascii_lowercase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def current_batch(today: date | None = None) -> str:
    """Academic year ``YYYY-YYYY+1``; January to May belong to the previous year."""
    today = today or date.today()
    start = today.year - 1 if today.month <= 5 else today.year
    return f"{start}-{start + 1}"


def grade_for(percentage: float) -> str:
    for minimum, grade in GRADE_SCALE:
        if percentage >= minimum:
            return grade
    return "F"


def new_marksheet_id(now: datetime) -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(7))
    return f"mks_{int(now.timestamp() * 1000)}_{suffix}"


def summarize(subjects: list[ResolvedSlot]) -> dict[str, Any]:
    """Totals, percentage, grade and result of a filled set of slots."""
    total_max = sum(slot.max_marks or 0 for slot in subjects)
    total_obtained = sum(slot.obtained_marks or 0 for slot in subjects)
    percentage = round(total_obtained / total_max * 100, 2) if total_max > 0 else 0.0
    return {
        "totalMaxMarks": total_max,
        "totalObtainedMarks": total_obtained,
        "percentage": percentage,
        "grade": grade_for(percentage),
        "result": "PASS" if percentage >= PASS_PERCENTAGE else "FAIL",
    }


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


class MarksheetService:
    """Builds marksheets from a template and the class's stored marks."""

    def __init__(
        self,
        store: IDocumentStore,
        matcher: TemplateMatcher | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._matcher = matcher or TemplateMatcher()
        self._clock = clock

    def get_template(self, tenant_id: str, template_id: str) -> MarksheetTemplate:
        doc = self._store.find_one(
            MARKSHEET_TEMPLATES, {"templateId": template_id, "managementId": tenant_id},
        )
        if doc is None:
            raise TemplateNotFoundError(f"Template {template_id!r} not found")
        return MarksheetTemplate.model_validate(doc)

    def prepare(self, tenant_id: str, template_id: str, class_id: str,
                class_name: str = "") -> list[StudentMarksDraft]:
        """Pre-fill every student's template slots from stored marks.

        Slots without a matching score stay unset and must be filled by the
        caller before ``generate`` accepts the drafts.
        """
        template = self.get_template(tenant_id, template_id)
        scope = {"managementId": tenant_id, "classId": class_id}

        students = self._store.find(STUDENTS, scope)
        directory = SubjectDirectory(self._store.find(SUBJECTS, scope))
        scores = aggregate_scores(flatten_mark_documents(self._store.find(MARKS, scope)), directory)
        logger.info(
            "Preparing %d students of class %s with scores for %d holders",
            len(students), class_id, len(scores),
        )

        drafts = []
        for student in students:
            holder_id = str(student["_id"])
            slots = self._matcher.resolve(template.subjects, holder_id, scores, directory)
            for slot in slots:
                if slot.obtained_marks is not None:
                    slot.obtained_marks = _round_half_up(slot.obtained_marks)
            student_id = str(student.get("studentId") or holder_id)
            drafts.append(StudentMarksDraft(
                student_id=student_id,
                student_name=student.get("name") or "",
                student_class=class_name,
                roll_number=str(student.get("rollNumber") or student_id),
                subjects=slots,
            ))
        return drafts

    def generate(
        self,
        tenant_id: str,
        template_id: str,
        class_id: str,
        drafts: list[StudentMarksDraft],
        *,
        batch: Optional[str] = None,
        created_by: str = "",
    ) -> list[GeneratedMarksheet]:
        if not template_id or not class_id or not drafts:
            raise ValidationRejectedError("Template ID, Class ID, and students data are required")

        incomplete = [draft.student_id for draft in drafts if not draft.is_complete]
        if incomplete:
            raise IncompleteMarksError(incomplete)

        template = self.get_template(tenant_id, template_id)
        batch = batch or current_batch(self._clock().date())

        marksheets: list[GeneratedMarksheet] = []
        documents: list[Document] = []
        for draft in drafts:
            now = self._clock()
            marksheet = GeneratedMarksheet.model_validate({
                "marksheetId": new_marksheet_id(now),
                "templateId": template_id,
                "classId": class_id,
                "studentId": draft.student_id,
                "studentName": draft.student_name,
                "studentClass": draft.student_class,
                "rollNumber": draft.roll_number,
                "logo": template.logo,
                "institutionName": template.institution_name,
                "subtitle": template.subtitle,
                "subjects": draft.subjects,
                **summarize(draft.subjects),
                "remarks": draft.remarks,
                "status": MarksheetStatus.PENDING_REVIEW,
                "batch": batch,
                "createdBy": created_by,
                "createdAt": now,
                "updatedAt": now,
            })
            marksheets.append(marksheet)
            documents.append(self._to_document(tenant_id, marksheet))

        self._store.insert_many(GENERATED_MARKSHEETS, documents)
        logger.info("Generated %d marksheets for template %s", len(marksheets), template_id)
        return marksheets

    @staticmethod
    def _to_document(tenant_id: str, marksheet: GeneratedMarksheet) -> Document:
        doc = marksheet.model_dump(by_alias=True, mode="json",
                                   exclude={"created_at", "updated_at", "reviewed_at"})
        doc["createdAt"] = marksheet.created_at
        doc["updatedAt"] = marksheet.updated_at
        doc["managementId"] = tenant_id
        return doc

    def list_marksheets(
        self,
        tenant_id: str,
        *,
        template_id: Optional[str] = None,
        class_id: Optional[str] = None,
        student_id: Optional[str] = None,
        status: Optional[MarksheetStatus] = None,
        batch: Optional[str] = None,
    ) -> list[GeneratedMarksheet]:
        query: dict[str, Any] = {"managementId": tenant_id}
        for key, value in (
            ("templateId", template_id),
            ("classId", class_id),
            ("studentId", student_id),
            ("status", status.value if status else None),
            ("batch", batch),
        ):
            if value:
                query[key] = value
        docs = self._store.find(GENERATED_MARKSHEETS, query, sort=[("createdAt", -1)])
        return [GeneratedMarksheet.model_validate(doc) for doc in docs]

    def update_status(self, tenant_id: str, marksheet_ids: list[str],
                      status: MarksheetStatus, reviewer: str = "") -> int:
        """Bulk status change; returns the number of marksheets modified."""
        if not marksheet_ids:
            raise ValidationRejectedError("Marksheet IDs are required")
        now = self._clock()
        set_fields: Document = {"status": status.value, "updatedAt": now}
        if status == MarksheetStatus.APPROVED:
            set_fields["reviewedBy"] = reviewer
            set_fields["reviewedAt"] = now
        modified = self._store.update_many(
            GENERATED_MARKSHEETS,
            {"marksheetId": {"$in": list(marksheet_ids)}, "managementId": tenant_id},
            set_fields,
        )
        logger.info("Set status %s on %d marksheets", status.value, modified)
        return modified

    def update_marksheet(
        self,
        tenant_id: str,
        marksheet_id: str,
        *,
        status: Optional[MarksheetStatus] = None,
        subjects: Optional[list[ResolvedSlot]] = None,
        remarks: Optional[str] = None,
        reviewer: str = "",
    ) -> None:
        """Edit one marksheet; new subjects recompute totals and grade."""
        now = self._clock()
        set_fields: Document = {"updatedAt": now}
        if status is not None:
            set_fields["status"] = status.value
        if remarks is not None:
            set_fields["remarks"] = remarks
        if subjects is not None:
            set_fields["subjects"] = [slot.model_dump(by_alias=True, mode="json") for slot in subjects]
            set_fields.update(summarize(subjects))
        if status == MarksheetStatus.APPROVED:
            set_fields["reviewedBy"] = reviewer
            set_fields["reviewedAt"] = now

        matched = self._store.update_one(
            GENERATED_MARKSHEETS,
            {"marksheetId": marksheet_id, "managementId": tenant_id},
            set_fields,
        )
        if not matched:
            raise MarksheetNotFoundError(f"Marksheet {marksheet_id!r} not found")

    def delete_marksheet(self, tenant_id: str, marksheet_id: str) -> None:
        deleted = self._store.delete_one(
            GENERATED_MARKSHEETS, {"marksheetId": marksheet_id, "managementId": tenant_id},
        )
        if not deleted:
            raise MarksheetNotFoundError(f"Marksheet {marksheet_id!r} not found")

    def delete_for_template(self, tenant_id: str, template_id: str) -> int:
        return self._store.delete_many(
            GENERATED_MARKSHEETS, {"templateId": template_id, "managementId": tenant_id},
        )
