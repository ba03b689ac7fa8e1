"""Accessors for the service objects attached to the running app."""

from __future__ import annotations

from flask import current_app

from panchayat_api.services.file_storage import FileStore
from panchayat_api.services.otp_service import OtpService


def get_otp_service() -> OtpService:
    return current_app.extensions["otp_service"]


def get_file_store() -> FileStore:
    return current_app.extensions["file_store"]
