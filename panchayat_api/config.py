"""Application settings resolved from the environment and caller overrides."""

from __future__ import annotations

import os
from typing import Any, Dict, Mapping, Optional

STORAGE_QUOTA_BYTES = 5 * 1024 * 1024  # assumed aggregate capacity of the store
MAX_FILE_RECORD_BYTES = int(4.5 * 1024 * 1024)  # per serialized file record
MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # per request

# Recognised camelCase options mapped to Flask config keys.
OPTION_KEYS = {
    "storageQuotaBytes": "STORAGE_QUOTA_BYTES",
    "maxFileRecordBytes": "MAX_FILE_RECORD_BYTES",
    "maxUploadBytes": "MAX_CONTENT_LENGTH",
    "enableMongodb": "ENABLE_MONGODB",
}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    return value


def _coerce(key: str, value: Any) -> Any:
    if key == "ENABLE_MONGODB":
        if isinstance(value, str):
            return value.lower() == "true"
        return bool(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{key} must be a non-negative integer")
    return value


def load_config(options: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Build the Flask config mapping from env vars, then apply ``options``.

    ``options`` accepts the camelCase names in ``OPTION_KEYS`` (for example
    ``{"storageQuotaBytes": 10 * 1024 * 1024}``); anything else is rejected.
    """
    config: Dict[str, Any] = {
        "STORAGE_QUOTA_BYTES": _env_int("STORAGE_QUOTA_BYTES", STORAGE_QUOTA_BYTES),
        "MAX_FILE_RECORD_BYTES": _env_int("MAX_FILE_RECORD_BYTES", MAX_FILE_RECORD_BYTES),
        "MAX_CONTENT_LENGTH": _env_int("MAX_UPLOAD_BYTES", MAX_UPLOAD_BYTES),
        "ENABLE_MONGODB": os.getenv("ENABLE_MONGODB", "false").lower() == "true",
    }

    for name, value in (options or {}).items():
        key = OPTION_KEYS.get(name)
        if key is None:
            raise ValueError(f"Unknown configuration option: {name}")
        config[key] = _coerce(key, value)

    return config
