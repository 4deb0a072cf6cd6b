"""Heuristics that turn a discovered path and sample into catalog metadata."""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from academy.models.field_catalog import DataType, IconTag

_CAMEL_BOUNDARY = re.compile(r"([A-Z])")

# Order matters: first match wins ("studentName" is a user field, not a hash).
ICON_RULES: list[tuple[IconTag, tuple[str, ...]]] = [
    (IconTag.USER, ("name", "parent", "father", "mother")),
    (IconTag.MAIL, ("email",)),
    (IconTag.PHONE, ("phone",)),
    (IconTag.HASH, ("id", "roll")),
    (IconTag.SCHOOL, ("class", "school")),
    (IconTag.LAYOUT, ("batch", "section")),
    (IconTag.IMAGE, ("photo", "image", "picture")),
    (IconTag.CALENDAR, ("date", "dob", "birth")),
    (IconTag.HOME, ("address", "village", "home")),
    (IconTag.CHECK, ("attendance",)),
    (IconTag.CALCULATOR, ("mark", "score", "grade")),
    (IconTag.PERCENT, ("percentage", "percent")),
    (IconTag.TROPHY, ("rank",)),
    (IconTag.FLAG, ("result",)),
]


def derive_label(field_path: str) -> str:
    """``"studentName.firstName"`` -> ``"Student Name First Name"``."""
    return " ".join(
        part[:1].upper() + _CAMEL_BOUNDARY.sub(r" \1", part[1:])
        for part in field_path.split(".")
    )


def suggest_icon(field_path: str) -> IconTag:
    lower = field_path.lower()
    for icon, keywords in ICON_RULES:
        if any(kw in lower for kw in keywords):
            return icon
    return IconTag.DATABASE


def infer_data_type(sample: Any) -> DataType:
    """Runtime type of one sample value; ``None`` and unknown types are strings."""
    if sample is None:
        return DataType.STRING
    if isinstance(sample, bool):
        return DataType.BOOLEAN
    if isinstance(sample, (datetime, date)):
        return DataType.DATE
    if isinstance(sample, (list, tuple)):
        return DataType.ARRAY
    if isinstance(sample, (int, float, Decimal)):
        return DataType.NUMBER
    return DataType.STRING


def stringify_sample(sample: Any) -> str:
    """Default value shown for a field: the sample as text, empty when absent."""
    if sample is None:
        return ""
    if isinstance(sample, bool):
        return "true" if sample else "false"
    if isinstance(sample, float) and sample.is_integer():
        return str(int(sample))
    if isinstance(sample, (datetime, date)):
        return sample.isoformat()
    if isinstance(sample, (list, tuple)):
        return ",".join(stringify_sample(item) for item in sample)
    return str(sample)


class IdentifierPredicate:
    """Detects per-record identifier segments in dotted paths.

    The default pattern matches 24-character hex ObjectIds; deployments whose
    store uses another identifier encoding configure their own pattern.
    """

    def __init__(self, pattern: str = r"^[0-9a-f]{24}$") -> None:
        self._pattern = re.compile(pattern, re.IGNORECASE)

    def is_identifier(self, segment: str) -> bool:
        return bool(self._pattern.match(segment))

    def path_has_identifier(self, path: str) -> bool:
        return any(self.is_identifier(part) for part in path.split("."))
