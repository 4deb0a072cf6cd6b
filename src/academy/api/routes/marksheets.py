"""Marksheet endpoints: prepare drafts, generate, review and delete."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from academy.api.deps import get_marksheets, get_tenant_id, get_user_email
from academy.core.exceptions import ValidationRejectedError
from academy.models.field_catalog import CamelModel
from academy.models.marksheet import MarksheetStatus, ResolvedSlot, StudentMarksDraft
from academy.services.marksheets import MarksheetService

router = APIRouter(prefix="/marksheets", tags=["marksheets"])


class GenerateRequest(CamelModel):
    template_id: str
    class_id: str
    students: list[StudentMarksDraft]
    batch: Optional[str] = None


class UpdateMarksheetRequest(CamelModel):
    marksheet_id: Optional[str] = None
    marksheet_ids: Optional[list[str]] = None
    status: Optional[MarksheetStatus] = None
    subjects: Optional[list[ResolvedSlot]] = None
    remarks: Optional[str] = None


def _dump(models: list) -> list[dict[str, Any]]:
    return [m.model_dump(by_alias=True, mode="json") for m in models]


@router.get("/prepare")
def prepare_marksheets(
    template_id: str = Query(alias="templateId"),
    class_id: str = Query(alias="classId"),
    class_name: str = Query("", alias="className"),
    tenant_id: str = Depends(get_tenant_id),
    service: MarksheetService = Depends(get_marksheets),
) -> dict[str, Any]:
    drafts = service.prepare(tenant_id, template_id, class_id, class_name=class_name)
    return {"students": _dump(drafts)}


@router.post("/generate")
def generate_marksheets(
    body: GenerateRequest,
    tenant_id: str = Depends(get_tenant_id),
    user_email: str = Depends(get_user_email),
    service: MarksheetService = Depends(get_marksheets),
) -> dict[str, Any]:
    marksheets = service.generate(
        tenant_id, body.template_id, body.class_id, body.students,
        batch=body.batch, created_by=user_email,
    )
    return {
        "success": True,
        "count": len(marksheets),
        "marksheets": _dump(marksheets),
        "message": f"{len(marksheets)} marksheets generated successfully",
    }


@router.get("")
def list_marksheets(
    template_id: Optional[str] = Query(None, alias="templateId"),
    class_id: Optional[str] = Query(None, alias="classId"),
    student_id: Optional[str] = Query(None, alias="studentId"),
    status: Optional[MarksheetStatus] = None,
    batch: Optional[str] = None,
    tenant_id: str = Depends(get_tenant_id),
    service: MarksheetService = Depends(get_marksheets),
) -> dict[str, Any]:
    marksheets = service.list_marksheets(
        tenant_id, template_id=template_id, class_id=class_id,
        student_id=student_id, status=status, batch=batch,
    )
    return {"marksheets": _dump(marksheets)}


@router.put("")
def update_marksheets(
    body: UpdateMarksheetRequest,
    tenant_id: str = Depends(get_tenant_id),
    user_email: str = Depends(get_user_email),
    service: MarksheetService = Depends(get_marksheets),
) -> dict[str, Any]:
    if body.marksheet_ids:
        if body.status is None:
            raise ValidationRejectedError("Status is required for bulk updates")
        modified = service.update_status(tenant_id, body.marksheet_ids, body.status, user_email)
        return {
            "success": True,
            "modifiedCount": modified,
            "message": f"{modified} marksheets updated",
        }

    if not body.marksheet_id:
        raise ValidationRejectedError("Marksheet ID is required")
    service.update_marksheet(
        tenant_id, body.marksheet_id,
        status=body.status, subjects=body.subjects, remarks=body.remarks, reviewer=user_email,
    )
    return {"success": True, "message": "Marksheet updated successfully"}


@router.delete("")
def delete_marksheets(
    marksheet_id: Optional[str] = Query(None, alias="marksheetId"),
    template_id: Optional[str] = Query(None, alias="templateId"),
    tenant_id: str = Depends(get_tenant_id),
    service: MarksheetService = Depends(get_marksheets),
) -> dict[str, Any]:
    if template_id:
        deleted = service.delete_for_template(tenant_id, template_id)
        return {
            "success": True,
            "deletedCount": deleted,
            "message": f"{deleted} marksheets deleted",
        }

    if not marksheet_id:
        raise ValidationRejectedError("Marksheet ID is required")
    service.delete_marksheet(tenant_id, marksheet_id)
    return {"success": True, "message": "Marksheet deleted successfully"}
