"""Data field key endpoints: catalog listing, discovery, custom keys."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends

from academy.api.deps import get_field_mapping, get_tenant_id
from academy.core.exceptions import ValidationRejectedError
from academy.models.field_catalog import (
    CamelModel,
    CustomKeySetDefinition,
    FieldPatch,
    LegacyCustomKey,
)
from academy.services.field_mapping import FieldMappingStore

router = APIRouter(prefix="/data-field-keys", tags=["data-field-keys"])


class SaveFieldKeysRequest(CamelModel):
    validate_from_db: bool = True
    custom_keys: Optional[list[LegacyCustomKey]] = None
    key_name: Optional[str] = None
    custom_key_set: Optional[CustomKeySetDefinition] = None
    is_edit: bool = False
    key_set_id: Optional[str] = None


class UpdateFieldKeyRequest(FieldPatch):
    id: Optional[str] = None
    placeholder_key: Optional[str] = None

    def patch(self) -> FieldPatch:
        return FieldPatch.model_validate(
            self.model_dump(exclude={"id", "placeholder_key"}, exclude_unset=True)
        )


class DeleteKeySetRequest(CamelModel):
    key_set_id: str


@router.get("")
def list_field_keys(
    refresh: bool = False,
    custom: bool = False,
    tenant_id: str = Depends(get_tenant_id),
    service: FieldMappingStore = Depends(get_field_mapping),
) -> dict[str, Any]:
    listing = service.list_fields(tenant_id, refresh=refresh, custom=custom)
    if custom:
        return {"savedKeys": [ks.model_dump(by_alias=True, mode="json") for ks in listing.key_sets]}
    if listing.no_data:
        return {"success": False, "noData": True, "dataFieldKeys": [], "message": listing.message}
    return {
        "success": True,
        "dataFieldKeys": [f.model_dump(by_alias=True, mode="json") for f in listing.fields],
        "count": len(listing.fields),
    }


@router.post("")
def save_field_keys(
    body: SaveFieldKeysRequest,
    tenant_id: str = Depends(get_tenant_id),
    service: FieldMappingStore = Depends(get_field_mapping),
) -> dict[str, Any]:
    if body.custom_key_set is not None:
        definition = body.custom_key_set
        key_set_id = service.save_custom_key_set(
            tenant_id, definition, is_edit=body.is_edit, key_set_id=body.key_set_id,
        )
        verb = "updated" if body.is_edit and body.key_set_id else "saved"
        return {
            "success": True,
            "message": f'Successfully {verb} key set "{definition.name}"',
            "keySetId": key_set_id,
            "keySet": definition.model_dump(by_alias=True, mode="json"),
        }

    if body.custom_keys:
        if not body.key_name:
            raise ValidationRejectedError("keyName is required when saving custom keys")
        count = service.save_legacy_custom_keys(tenant_id, body.key_name, body.custom_keys)
        return {
            "success": True,
            "message": f'Successfully saved {count} custom key(s) as "{body.key_name}"',
            "count": count,
            "keyName": body.key_name,
        }

    count = service.upsert_from_discovery(tenant_id, validate_from_db=body.validate_from_db)
    listing = service.list_fields(tenant_id)
    return {
        "success": True,
        "message": f"{count} data field keys initialized/updated from database",
        "count": count,
        "validatedFromDb": True,
        "keys": [f.model_dump(by_alias=True, mode="json") for f in listing.fields],
    }


@router.put("")
def update_field_key(
    body: UpdateFieldKeyRequest,
    tenant_id: str = Depends(get_tenant_id),
    service: FieldMappingStore = Depends(get_field_mapping),
) -> dict[str, Any]:
    service.update_field(
        tenant_id, body.patch(), field_id=body.id, placeholder_key=body.placeholder_key,
    )
    return {"success": True, "message": "Data field key updated successfully"}


@router.delete("")
def delete_key_set(
    body: DeleteKeySetRequest,
    tenant_id: str = Depends(get_tenant_id),
    service: FieldMappingStore = Depends(get_field_mapping),
) -> dict[str, Any]:
    service.delete_key_set(tenant_id, body.key_set_id)
    return {"success": True, "message": "Key set deleted successfully"}
