"""Exceptions raised by the service layer and rendered by the API."""

from __future__ import annotations

from typing import Any, Dict, Optional


class PanchayatError(Exception):
    """Base exception carrying a user-readable message and a stable code."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "error": self.message,
            "details": self.details,
        }


class ValidationError(PanchayatError):
    """Input failed validation before touching storage."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="VALIDATION_ERROR", details=details)


# ============================================
# Storage errors
# ============================================

class CapacityError(PanchayatError):
    """A write was refused because it would not fit."""


class FileTooLargeError(CapacityError):
    """The serialized file record exceeds the per-file cap."""

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"File is too large to store ({size} bytes encoded, limit {limit} bytes).",
            code="FILE_TOO_LARGE",
            details={"size": size, "limit": limit},
        )


class StorageQuotaError(CapacityError):
    """The underlying key-value store rejected the write."""

    def __init__(self, message: str = "Storage quota exceeded. Remove some files and try again."):
        super().__init__(message, code="STORAGE_QUOTA_EXCEEDED")


class StorageVerificationError(PanchayatError):
    """A stored value could not be read back after writing it."""

    def __init__(self, key: str):
        super().__init__(
            "File could not be verified after saving. Please try again.",
            code="STORAGE_VERIFICATION_FAILED",
            details={"key": key},
        )


class FileDownloadError(PanchayatError):
    """A file could not be prepared for download."""

    def __init__(self, message: str, file_id: Optional[str] = None, reason: str = "corrupted"):
        details = {"fileId": file_id, "reason": reason}
        super().__init__(message, code="FILE_DOWNLOAD_FAILED", details=details)


# ============================================
# Email errors
# ============================================

class EmailDispatchError(PanchayatError):
    """The transactional email provider did not accept a message."""

    def __init__(self, message: str = "Failed to send email. Please try again later."):
        super().__init__(message, code="EMAIL_DISPATCH_FAILED")
