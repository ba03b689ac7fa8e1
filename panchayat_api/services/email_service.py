"""Outbound email through the EmailJS REST API."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import requests

from panchayat_api.errors import EmailDispatchError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.emailjs.com/api/v1.0/email/send"
REQUEST_TIMEOUT_SECONDS = 10

PORTAL_NAME = "Digital E-Gram Panchayat"
NOREPLY_ADDRESS = "noreply@grampanchayat.gov.in"
SUPPORT_ADDRESS = "support@grampanchayat.gov.in"

SUPPORT_REQUEST_TYPES = ("staff", "admin")


def _settings() -> Dict[str, Optional[str]]:
    return {
        "api_url": os.getenv("EMAILJS_API_URL") or DEFAULT_API_URL,
        "service_id": os.getenv("EMAILJS_SERVICE_ID"),
        "template_id": os.getenv("EMAILJS_TEMPLATE_ID"),
        "otp_template_id": os.getenv("EMAILJS_OTP_TEMPLATE_ID"),
        "public_key": os.getenv("EMAILJS_PUBLIC_KEY"),
        "private_key": os.getenv("EMAILJS_PRIVATE_KEY"),
    }


def is_configured(require_template: bool = True) -> bool:
    """Return True if the EmailJS credentials needed for a send are present."""
    settings = _settings()
    if not settings["service_id"] or not settings["public_key"]:
        return False
    return bool(settings["template_id"]) or not require_template


def _send(template_id: str, template_params: Dict[str, Any]) -> None:
    """POST one message to EmailJS, raising on any non-200 outcome."""
    settings = _settings()
    body: Dict[str, Any] = {
        "service_id": settings["service_id"],
        "template_id": template_id,
        "user_id": settings["public_key"],
        "template_params": template_params,
    }
    if settings["private_key"]:
        body["accessToken"] = settings["private_key"]

    try:
        response = requests.post(
            settings["api_url"],
            json=body,
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
    except requests.RequestException as exc:
        raise EmailDispatchError() from exc

    if response.status_code != 200:
        logger.error("EmailJS rejected message: %s %s", response.status_code, response.text[:200])
        raise EmailDispatchError()


def send_otp_email(to_email: str, to_name: str, otp_code: str) -> None:
    """Send a registration verification code."""
    settings = _settings()
    template_id = settings["otp_template_id"] or settings["template_id"]
    if not settings["service_id"] or not settings["public_key"] or not template_id:
        raise EmailDispatchError("Email service is not configured. Please contact support.")

    message = f"""
Dear {to_name},

Your email verification code for {PORTAL_NAME} registration is:

{otp_code}

This code will expire in 5 minutes. Please do not share this code with anyone.

If you did not request this verification, please ignore this email.

Best regards,
{PORTAL_NAME} Team
"""

    try:
        _send(
            template_id,
            {
                "user_email": to_email,
                "to_name": to_name,
                "from_name": PORTAL_NAME,
                "subject": "Email Verification - OTP Code",
                "message": message,
                "otp_code": otp_code,
                "reply_to": NOREPLY_ADDRESS,
            },
        )
    except EmailDispatchError as exc:
        raise EmailDispatchError("Failed to send verification code. Please try again.") from exc


def send_contact_email(
    from_name: str,
    from_email: str,
    subject: str,
    message: str,
    to_name: str = "Support Team",
) -> None:
    """Forward a contact form submission to the support inbox."""
    if not is_configured():
        raise EmailDispatchError("Email service is not configured. Please contact support.")

    _send(
        _settings()["template_id"],
        {
            "from_name": from_name,
            "from_email": from_email,
            "subject": subject,
            "message": message,
            "to_name": to_name,
            "reply_to": from_email,
        },
    )


def send_support_request(
    from_name: str,
    from_email: str,
    request_type: str,
    message: str,
    phone: Optional[str] = None,
) -> None:
    """Ask the admin team for staff or admin access."""
    if request_type not in SUPPORT_REQUEST_TYPES:
        raise ValidationError(
            "Request type must be 'staff' or 'admin'.",
            details={"requestType": request_type},
        )
    if not is_configured():
        raise EmailDispatchError("Email service is not configured. Please contact support.")

    body = f"""
Access Request Details:
- Name: {from_name}
- Email: {from_email}
- Phone: {phone or 'Not provided'}
- Requested Role: {request_type.capitalize()}

Message:
{message}
"""

    _send(
        _settings()["template_id"],
        {
            "from_name": from_name,
            "from_email": from_email,
            "subject": f"{request_type.upper()} Access Request",
            "message": body,
            "to_name": "Admin Team",
            "reply_to": from_email,
        },
    )


def send_application_notification(
    to_name: str,
    to_email: str,
    service_name: str,
    application_id: str,
    status: str,
    remarks: Optional[str] = None,
) -> bool:
    """Tell an applicant their application status changed.

    Notifications are best effort: failures are logged and reported as False.
    """
    if not is_configured():
        logger.warning("EmailJS not configured, skipping notification email")
        return False

    remarks_line = f"Remarks: {remarks}" if remarks else ""
    message = f"""
Dear {to_name},

Your application for "{service_name}" has been updated.

Application ID: {application_id}
New Status: {status.upper()}
{remarks_line}

You can track your application status by logging into your account at our portal.

Best regards,
{PORTAL_NAME} Team
"""

    try:
        _send(
            _settings()["template_id"],
            {
                "from_name": PORTAL_NAME,
                "from_email": NOREPLY_ADDRESS,
                "to_name": to_name,
                "to_email": to_email,
                "subject": f"Application Status Update - {service_name}",
                "message": message,
                "reply_to": SUPPORT_ADDRESS,
            },
        )
    except EmailDispatchError:
        logger.warning("Failed to send application notification for %s", application_id, exc_info=True)
        return False

    return True
