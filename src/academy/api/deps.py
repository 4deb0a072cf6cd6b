"""Request dependencies: tenant scope and service lookup."""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, Request

from academy.services.field_mapping import FieldMappingStore
from academy.services.marksheets import MarksheetService


def get_tenant_id(
    x_management_id: Optional[str] = Header(None, alias="X-Management-Id"),
) -> str:
    if not x_management_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_management_id


def get_user_email(x_user_email: Optional[str] = Header(None, alias="X-User-Email")) -> str:
    return x_user_email or ""


def get_field_mapping(request: Request) -> FieldMappingStore:
    return request.app.state.field_mapping


def get_marksheets(request: Request) -> MarksheetService:
    return request.app.state.marksheets
