"""Field catalog models: discovered fields, custom key sets, legacy keys."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from academy.core.types import Document


class DataType(StrEnum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    ARRAY = "array"
    BOOLEAN = "boolean"
    OBJECT = "object"  # custom key sets only


class IconTag(StrEnum):
    USER = "user"
    MAIL = "mail"
    PHONE = "phone"
    HASH = "hash"
    SCHOOL = "school"
    LAYOUT = "layout"
    IMAGE = "image"
    CALENDAR = "calendar"
    HOME = "home"
    CHECK = "check"
    CALCULATOR = "calculator"
    PERCENT = "percent"
    TROPHY = "trophy"
    FLAG = "flag"
    DATABASE = "database"
    KEY = "key"


class CamelModel(BaseModel):
    """Stored documents use camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_document(cls, document: Document):
        data = dict(document)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)


class FieldCatalogEntry(CamelModel):
    """One discovered or user-declared field in a tenant's catalog."""

    id: Optional[str] = None
    placeholder_key: str
    db_field_path: str
    label: str
    icon: IconTag = IconTag.DATABASE
    exists_in_db: bool = True
    data_type: DataType = DataType.STRING
    default_value: str = ""
    description: str = ""
    key_name: Optional[str] = None
    key_type: Optional[str] = None
    subject_name: Optional[str] = None
    calculation_config: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CustomKeySetDefinition(CamelModel):
    """User-authored bundle of manual, test-based and calculation keys."""

    name: str = Field(min_length=1)
    batch_name: str = ""
    manual_keys: list[dict[str, Any]] = Field(default_factory=list)
    test_based_keys: list[dict[str, Any]] = Field(default_factory=list)
    calculation_keys: list[dict[str, Any]] = Field(default_factory=list)
    config: dict[str, Any] = Field(default_factory=dict)


class CustomKeySet(CustomKeySetDefinition):
    """A stored key set as returned to callers."""

    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Document) -> CustomKeySet:
        definition = document.get("customKeySet") or {}
        return cls.model_validate({
            **definition,
            "id": str(document["_id"]),
            "name": definition.get("name") or document.get("keyName"),
            "createdAt": document.get("createdAt"),
            "updatedAt": document.get("updatedAt"),
        })


class LegacyCustomKey(CamelModel):
    """Single manual or calculation key saved under a key name."""

    key_id: str = Field(min_length=1)
    type: Literal["custom", "manual", "calculation"] = "custom"
    placeholder: Optional[str] = None
    label: Optional[str] = None
    name: Optional[str] = None
    subject_name: Optional[str] = None
    calculation_config: Optional[dict[str, Any]] = None

    @property
    def is_calculation(self) -> bool:
        return self.type == "calculation"


class FieldPatch(CamelModel):
    """Partial update of a catalog entry; unset fields are left alone."""

    db_field_path: Optional[str] = None
    label: Optional[str] = None
    icon: Optional[IconTag] = None
    default_value: Optional[str] = None
    data_type: Optional[DataType] = None
    description: Optional[str] = None

    def to_set_fields(self) -> Document:
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


class FieldListing(BaseModel):
    """Result of a catalog read."""

    fields: list[FieldCatalogEntry] = Field(default_factory=list)
    key_sets: list[CustomKeySet] = Field(default_factory=list)
    no_data: bool = False
    message: str = ""
