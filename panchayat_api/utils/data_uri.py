"""Encoding of raw file bytes as self-describing ``data:`` URIs."""

from __future__ import annotations

import base64
import binascii
from typing import Tuple

DEFAULT_MIME_TYPE = "application/octet-stream"


def encode_data_uri(raw_bytes: bytes, mime_type: str) -> str:
    """Return ``raw_bytes`` as a base64 data URI tagged with ``mime_type``."""
    encoded = base64.b64encode(raw_bytes).decode("ascii")
    return f"data:{mime_type or DEFAULT_MIME_TYPE};base64,{encoded}"


def decode_data_uri(uri: str) -> Tuple[str, bytes]:
    """Split a base64 data URI into its MIME type and decoded bytes.

    Raises ValueError when ``uri`` is not a base64 data URI.
    """
    if not isinstance(uri, str) or not uri.startswith("data:"):
        raise ValueError("Payload is not a data URI")

    header, sep, payload = uri[5:].partition(",")
    if not sep:
        raise ValueError("Data URI has no payload separator")

    params = header.split(";")
    if "base64" not in params[1:]:
        raise ValueError("Data URI is not base64 encoded")

    try:
        raw_bytes = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Data URI payload is not valid base64") from exc

    return params[0] or DEFAULT_MIME_TYPE, raw_bytes
