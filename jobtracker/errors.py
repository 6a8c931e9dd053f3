"""
Errors raised by the record store.

Every error carries a user-facing ``message`` and the number of seconds a
front end should keep it on screen before clearing it.
"""

from enum import Enum
from typing import Optional

ERROR_DISPLAY_SECONDS = 3
SUMMARY_DISPLAY_SECONDS = 5


class StoreError(Exception):
    """Base exception for record store operations."""

    display_seconds = ERROR_DISPLAY_SECONDS
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationReason(str, Enum):
    MISSING_FIELDS = "missing_fields"
    INVALID_URL = "invalid_url"
    INVALID_STATUS = "invalid_status"
    TOO_LARGE = "too_large"


_VALIDATION_MESSAGES = {
    ValidationReason.MISSING_FIELDS: "Company and position are required",
    ValidationReason.INVALID_URL: "Please enter a valid URL (starting with http:// or https://)",
    ValidationReason.INVALID_STATUS: "Invalid status. Use one of: Applied, Interview, Offer, Rejected, Withdrawn",
    ValidationReason.TOO_LARGE: "Job data is too large. Please reduce the amount of information.",
}


class ValidationError(StoreError):
    """Input rejected before anything was written."""

    def __init__(self, reason: ValidationReason, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or _VALIDATION_MESSAGES[reason])


class NotFoundError(StoreError):
    default_message = "Job not found"

    def __init__(self, record_id: str = "", message: Optional[str] = None):
        self.record_id = record_id
        super().__init__(message)


class ListFailed(StoreError):
    default_message = "Failed to load applications. Please refresh the page."


class DeleteFailed(StoreError):
    default_message = "Failed to delete application. Please try again."


class ExportReason(str, Enum):
    EMPTY = "empty"


class ExportError(StoreError):
    default_message = "No applications to export"
    display_seconds = SUMMARY_DISPLAY_SECONDS

    def __init__(self, reason: ExportReason = ExportReason.EMPTY, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message)


class ImportReason(str, Enum):
    BAD_FORMAT = "bad_format"
    NO_VALID_RECORDS = "no_valid_records"


_IMPORT_MESSAGES = {
    ImportReason.BAD_FORMAT: "Error importing file. Please check the file format.",
    ImportReason.NO_VALID_RECORDS: "No valid applications found in file",
}


class BundleImportError(StoreError):
    """Import bundle could not be used at all (nothing was written)."""

    display_seconds = SUMMARY_DISPLAY_SECONDS

    def __init__(self, reason: ImportReason, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or _IMPORT_MESSAGES[reason])
