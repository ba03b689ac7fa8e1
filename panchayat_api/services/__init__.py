"""Service layer modules for the Digital E-Gram Panchayat API."""

from . import audit_service, email_service, file_storage, otp_service

__all__ = [
    "audit_service",
    "email_service",
    "file_storage",
    "otp_service",
]
