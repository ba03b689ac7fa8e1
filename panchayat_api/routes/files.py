"""/api/files routes for application attachments."""

from __future__ import annotations

from io import BytesIO
from typing import Any, Dict, List

from flask import Blueprint, current_app, jsonify, request, send_file

from panchayat_api.errors import (
    FileDownloadError,
    FileTooLargeError,
    StorageQuotaError,
    StorageVerificationError,
)
from panchayat_api.services import audit_service
from panchayat_api.services.file_storage import FileLookup, FileStatus
from panchayat_api.utils.context import get_file_store

bp = Blueprint("files", __name__, url_prefix="/api/files")

LOOKUP_STATUS_CODES = {
    FileStatus.FOUND: 200,
    FileStatus.INVALID_ID: 400,
    FileStatus.NOT_FOUND: 404,
    FileStatus.CORRUPTED: 422,
}

LOOKUP_MESSAGES = {
    FileStatus.INVALID_ID: "Invalid file identifier.",
    FileStatus.NOT_FOUND: "File not found.",
    FileStatus.CORRUPTED: "File data is corrupted.",
}


def _lookup_error(result: FileLookup):
    return (
        jsonify(
            status=result.status.value,
            error=LOOKUP_MESSAGES[result.status],
            retryable=result.retryable,
        ),
        LOOKUP_STATUS_CODES[result.status],
    )


@bp.post("")
def upload_files():
    """Store uploaded documents and return their identifiers."""
    files = request.files.getlist("files")
    if not files:
        return jsonify(error="No files uploaded."), 400

    file_store = get_file_store()
    uploaded: List[Dict[str, Any]] = []
    for storage in files:
        if storage.filename == "":
            continue

        raw_bytes = storage.read()
        try:
            stored = file_store.store_file(storage.filename, storage.mimetype, raw_bytes)
        except FileTooLargeError as e:
            return jsonify({**e.to_dict(), "files": uploaded}), 413
        except StorageQuotaError as e:
            current_app.logger.warning(f"Storage quota exceeded while saving {storage.filename}")
            return jsonify({**e.to_dict(), "files": uploaded}), 507
        except StorageVerificationError as e:
            current_app.logger.error(f"Failed to verify stored file {storage.filename}")
            return jsonify({**e.to_dict(), "files": uploaded}), 500

        audit_service.log_action(
            request.form.get("userId", "anonymous"),
            "UPLOAD_FILE",
            {"fileId": stored["url"], "name": stored["name"], "size": stored["size"]},
        )
        uploaded.append(stored)

    if not uploaded:
        return jsonify(error="No valid files provided."), 400

    return jsonify(files=uploaded), 201


@bp.get("/<file_id>")
def get_file(file_id: str):
    """Return a stored file including its data URI payload."""
    result = get_file_store().lookup(file_id)
    if not result.found:
        return _lookup_error(result)

    return jsonify(status=result.status.value, file=result.record.content()), 200


@bp.get("/<file_id>/metadata")
def get_file_metadata(file_id: str):
    """Return a stored file's details without its contents."""
    result = get_file_store().lookup(file_id)
    if not result.found:
        return _lookup_error(result)

    return jsonify(status=result.status.value, file=result.record.metadata()), 200


@bp.get("/<file_id>/exists")
def file_exists(file_id: str):
    return jsonify(exists=get_file_store().exists(file_id)), 200


@bp.get("/<file_id>/download")
def download_file(file_id: str):
    """Send the decoded file as an attachment under its original name."""
    try:
        raw_bytes, filename, mime_type = get_file_store().download(file_id)
    except FileDownloadError as e:
        status = FileStatus(e.details.get("reason", FileStatus.CORRUPTED.value))
        return jsonify(e.to_dict()), LOOKUP_STATUS_CODES[status]

    return send_file(
        BytesIO(raw_bytes),
        mimetype=mime_type or "application/octet-stream",
        as_attachment=True,
        download_name=filename,
    )
