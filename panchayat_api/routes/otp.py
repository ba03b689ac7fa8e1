"""/api/otp routes issuing and checking email verification codes."""

from __future__ import annotations

from typing import Any, Dict, Tuple

from flask import Blueprint, current_app, jsonify, request

from panchayat_api.errors import EmailDispatchError
from panchayat_api.services import audit_service
from panchayat_api.utils.context import get_otp_service

bp = Blueprint("otp", __name__, url_prefix="/api/otp")


def _normalize_email(value: Any) -> str:
    return str(value or "").strip().lower()


def _read_recipient() -> Tuple[str, str]:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    email = _normalize_email(payload.get("email"))
    name = str(payload.get("name") or "").strip() or email
    return email, name


def _issue(email: str, name: str, action: str):
    service = get_otp_service()
    try:
        record = service.issue(email, name)
    except EmailDispatchError as e:
        current_app.logger.error(f"Failed to send verification code to {email}: {e}")
        return jsonify(error=e.message, code=e.code), 502

    audit_service.log_action(email, action)

    return (
        jsonify(
            email=email,
            expiresAt=record.expires_at,
            remainingSeconds=service.remaining_seconds(email),
        ),
        200,
    )


@bp.post("/request")
def request_code():
    """Email a fresh six digit code, replacing any code already issued."""
    email, name = _read_recipient()
    if not email:
        return jsonify(error="Email is required."), 400

    return _issue(email, name, "REQUEST_OTP")


@bp.post("/resend")
def resend_code():
    """Send a new code once the previous one has run out."""
    email, name = _read_recipient()
    if not email:
        return jsonify(error="Email is required."), 400

    remaining = get_otp_service().remaining_seconds(email)
    if remaining > 0:
        return (
            jsonify(
                error=f"Please wait {remaining} seconds before requesting a new code.",
                remainingSeconds=remaining,
            ),
            429,
        )

    return _issue(email, name, "RESEND_OTP")


@bp.post("/verify")
def verify_code():
    """Check a submitted code. A correct code can be used only once."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    email = _normalize_email(payload.get("email"))
    code = str(payload.get("code", "")).strip()

    if not email or not code:
        return jsonify(verified=False, error="Email and code are required."), 400

    if not get_otp_service().verify(email, code):
        return jsonify(verified=False, error="Invalid or expired code."), 400

    audit_service.log_action(email, "VERIFY_OTP")
    return jsonify(verified=True), 200


@bp.get("/remaining")
def remaining_time():
    """Return how long the current code stays valid."""
    email = _normalize_email(request.args.get("email"))
    if not email:
        return jsonify(error="Email is required."), 400

    service = get_otp_service()
    return (
        jsonify(
            email=email,
            remainingSeconds=service.remaining_seconds(email),
            valid=service.is_valid(email),
        ),
        200,
    )
