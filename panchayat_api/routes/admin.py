"""Admin utilities for storage maintenance and applicant notifications."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from panchayat_api.services import audit_service, email_service
from panchayat_api.utils.context import get_file_store

bp = Blueprint("admin", __name__, url_prefix="/api/admin")

DEFAULT_CLEANUP_AGE_HOURS = 24 * 30


@bp.get("/storage")
def storage_overview():
    """Report storage usage and list every stored file."""
    file_store = get_file_store()
    return (
        jsonify(
            usage=file_store.usage_info(),
            files=file_store.list_metadata(),
        ),
        200,
    )


@bp.post("/cleanup")
def cleanup_files():
    """Remove stored files older than ``maxAgeHours`` along with damaged entries."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    max_age_hours = payload.get("maxAgeHours", DEFAULT_CLEANUP_AGE_HOURS)

    if isinstance(max_age_hours, bool) or not isinstance(max_age_hours, (int, float)) or max_age_hours < 0:
        return jsonify(error="maxAgeHours must be a non-negative number."), 400

    file_store = get_file_store()
    removed = file_store.cleanup(max_age_hours)
    current_app.logger.info(f"Cleanup removed {removed} file(s) older than {max_age_hours}h")

    audit_service.log_action(
        payload.get("userId", "admin"),
        "CLEANUP_FILES",
        {"maxAgeHours": max_age_hours, "removed": removed},
        user_role="admin",
    )

    return jsonify(removed=removed, usage=file_store.usage_info()), 200


@bp.post("/notifications/application-status")
def notify_application_status():
    """Email an applicant that their application changed status."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    required = ("toName", "toEmail", "serviceName", "applicationId", "status")
    missing = [field for field in required if not payload.get(field)]
    if missing:
        return jsonify(error=f"Missing required fields: {', '.join(missing)}"), 400

    sent = email_service.send_application_notification(
        to_name=payload["toName"],
        to_email=payload["toEmail"],
        service_name=payload["serviceName"],
        application_id=payload["applicationId"],
        status=payload["status"],
        remarks=payload.get("remarks"),
    )

    audit_service.log_action(
        payload.get("updatedBy", "staff"),
        "NOTIFY_APPLICATION_STATUS",
        {"applicationId": payload["applicationId"], "status": payload["status"], "sent": sent},
        user_role=payload.get("userRole"),
    )

    return jsonify(sent=sent), 200


@bp.get("/logs")
def recent_logs():
    """Return the most recent audit log entries."""
    try:
        limit = int(request.args.get("limit", 100))
    except ValueError:
        return jsonify(error="limit must be an integer."), 400

    return jsonify(logs=audit_service.get_recent_actions(max(1, min(limit, 500)))), 200
