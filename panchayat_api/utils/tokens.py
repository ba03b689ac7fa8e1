"""Clock and identifier helpers shared by the services."""

from __future__ import annotations

import secrets
import string
import time

FILE_ID_PREFIX = "file"
FILE_ID_SUFFIX_LENGTH = 9

_BASE36 = string.digits + string.ascii_lowercase


def now_millis() -> int:
    """Return the current UNIX timestamp in milliseconds."""
    return int(time.time() * 1000)


def generate_otp_code() -> str:
    """Return a six digit verification code between 100000 and 999999."""
    return str(100000 + secrets.randbelow(900000))


def generate_file_id(timestamp_ms: int) -> str:
    """Return a file identifier of the form ``file_<millis>_<base36>``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(FILE_ID_SUFFIX_LENGTH))
    return f"{FILE_ID_PREFIX}_{timestamp_ms}_{suffix}"
