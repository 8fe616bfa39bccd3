"""
Error taxonomy for the profile persistence and export services.

Validation and auth errors are terminal and reach the caller. Transient
backend errors are absorbed by the tier fallbacks and only surface once
every tier is exhausted. Malformed legacy data never leaves the normalizer.
"""
from typing import List, Optional


class PortalError(Exception):
    """Base class for errors raised by the portal services."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PortalError):
    """Input rejected before any network call was issued."""


class DocumentTooLargeError(ValidationError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"File too large. Maximum size is {limit // (1024 * 1024)}MB.")
        self.size = size
        self.limit = limit


class UnsupportedDocumentTypeError(ValidationError):
    def __init__(self, extension: Optional[str], allowed: List[str]):
        super().__init__(f"Invalid file type. Allowed types: {', '.join(allowed)}")
        self.extension = extension
        self.allowed = allowed


class AuthError(PortalError):
    """Missing or invalid credentials."""


class ExportForbiddenError(AuthError):
    def __init__(self, your_roles: List[str], required_roles: List[str]):
        super().__init__(
            "Unauthorized. You need Admin, Professor, or LabAssistant role to access this resource."
        )
        self.your_roles = your_roles
        self.required_roles = required_roles


class NotFoundError(PortalError):
    """No underlying record, or no bulk record source."""


class TransientBackendError(PortalError):
    """Store or network failure; retried through the next tier when one exists."""


class DocumentTransferError(TransientBackendError):
    """Negotiating the write URL or transferring the bytes failed."""


class DocumentRecordError(TransientBackendError):
    """The object was stored but none of the record-update paths succeeded."""

    def __init__(self, file_key: str):
        super().__init__(
            "Resume uploaded but the profile record could not be updated. Please try again."
        )
        self.file_key = file_key


class MalformedDataError(PortalError):
    """Legacy resume JSON could not be parsed."""
