"""Academy exception hierarchy."""

from __future__ import annotations


class AcademyError(Exception):
    """Base exception for all Academy errors."""


class NotFoundError(AcademyError):
    """A selector did not resolve within the tenant scope."""


class FieldNotFoundError(NotFoundError):
    """Data field key not found."""


class KeySetNotFoundError(NotFoundError):
    """Custom key set not found."""


class TemplateNotFoundError(NotFoundError):
    """Marksheet template not found."""


class MarksheetNotFoundError(NotFoundError):
    """Generated marksheet not found."""


class NoDataError(AcademyError):
    """Discovery found no students, marks or subjects for the tenant."""

    def __init__(self, tenant_id: str) -> None:
        self.tenant_id = tenant_id
        super().__init__(
            "No data found. Create students, marks, or subjects first to discover database fields."
        )


class ValidationRejectedError(AcademyError):
    """Request rejected before any processing took place."""


class DuplicatePlaceholderError(ValidationRejectedError):
    """Placeholder key already taken within the tenant."""

    def __init__(self, placeholder_key: str) -> None:
        self.placeholder_key = placeholder_key
        super().__init__(f"Placeholder key {placeholder_key!r} already exists")


class IncompleteMarksError(ValidationRejectedError):
    """One or more students have unset template slots."""

    def __init__(self, incomplete_students: list[str]) -> None:
        self.incomplete_students = incomplete_students
        super().__init__(
            f"Please fill marks for all students. "
            f"{len(incomplete_students)} student(s) have incomplete marks."
        )


class StoreIOError(AcademyError):
    """Document store read or write failed."""


class CacheError(AcademyError):
    """Redis cache operation failed."""
