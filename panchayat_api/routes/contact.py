"""/api/contact routes forwarding visitor messages to the panchayat office."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from panchayat_api.errors import EmailDispatchError
from panchayat_api.services import audit_service, email_service

bp = Blueprint("contact", __name__, url_prefix="/api/contact")


def _missing(payload: Dict[str, Any], *fields: str):
    return [field for field in fields if not str(payload.get(field) or "").strip()]


@bp.post("")
def submit_contact_form():
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    missing = _missing(payload, "name", "email", "subject", "message")
    if missing:
        return jsonify(error=f"Missing required fields: {', '.join(missing)}"), 400

    try:
        email_service.send_contact_email(
            from_name=str(payload["name"]).strip(),
            from_email=str(payload["email"]).strip(),
            subject=str(payload["subject"]).strip(),
            message=payload["message"],
        )
    except EmailDispatchError as e:
        current_app.logger.error(f"Failed to send contact email: {e}")
        return jsonify(e.to_dict()), 502

    audit_service.log_action(str(payload["email"]).strip(), "CONTACT_FORM", {"subject": str(payload["subject"]).strip()})
    return jsonify(success=True), 200


@bp.post("/support-request")
def submit_support_request():
    """Ask for staff or admin access to the dashboard."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    missing = _missing(payload, "name", "email", "requestType", "message")
    if missing:
        return jsonify(error=f"Missing required fields: {', '.join(missing)}"), 400

    try:
        email_service.send_support_request(
            from_name=str(payload["name"]).strip(),
            from_email=str(payload["email"]).strip(),
            request_type=str(payload["requestType"]).strip().lower(),
            message=payload["message"],
            phone=payload.get("phone"),
        )
    except EmailDispatchError as e:
        current_app.logger.error(f"Failed to send support request: {e}")
        return jsonify(e.to_dict()), 502

    audit_service.log_action(
        str(payload["email"]).strip(),
        "SUPPORT_REQUEST",
        {"requestType": str(payload["requestType"]).strip().lower()},
    )
    return jsonify(success=True), 200
