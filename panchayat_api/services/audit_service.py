"""Audit trail of user actions stored in MongoDB."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from flask import current_app, has_app_context
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from panchayat_api import database

logger = logging.getLogger(__name__)


def _mongodb_enabled() -> bool:
    # The running app's config wins over the environment.
    if has_app_context():
        return bool(current_app.config.get("ENABLE_MONGODB", False))
    return database.mongodb_enabled()


def _get_logs_collection() -> Optional[Collection]:
    """Get the MongoDB logs collection if MongoDB is enabled."""
    if not _mongodb_enabled():
        return None

    try:
        return database.get_database()["logs"]
    except PyMongoError:
        logger.warning("MongoDB unavailable for audit logging", exc_info=True)
        return None


def log_action(
    user_id: str,
    action: str,
    details: Optional[Dict[str, Any]] = None,
    user_role: Optional[str] = None,
) -> bool:
    """
    Record an action in the audit log.

    Logging never interrupts the caller: failures are reported via the
    module logger and the function returns False.

    Args:
        user_id: Who performed the action (an email for anonymous flows)
        action: Upper-case action name, e.g. ``"UPLOAD_FILE"``
        details: Extra context stored alongside the entry
        user_role: Role of the actor, ``"unknown"`` when not known

    Returns:
        True if the entry was written to MongoDB
    """
    entry = {
        "userId": user_id,
        "userRole": user_role or "unknown",
        "action": action,
        "details": details or {},
        "timestamp": datetime.utcnow(),
    }

    collection = _get_logs_collection()
    if collection is None:
        logger.info("LOG: %s user=%s details=%s", action, user_id, entry["details"])
        return False

    try:
        collection.insert_one(entry)
        return True
    except PyMongoError:
        logger.error("Failed to write audit log entry %s", action, exc_info=True)
        return False


def get_recent_actions(limit: int = 100) -> List[Dict[str, Any]]:
    """Return the most recent audit entries, newest first."""
    collection = _get_logs_collection()
    if collection is None:
        return []

    try:
        entries = list(collection.find({}, {"_id": 0}).sort("timestamp", -1).limit(limit))
    except PyMongoError:
        logger.error("Failed to read audit log", exc_info=True)
        return []

    for entry in entries:
        if isinstance(entry.get("timestamp"), datetime):
            entry["timestamp"] = entry["timestamp"].isoformat()
    return entries


def create_indexes() -> None:
    """Create indexes for the audit log collection."""
    collection = _get_logs_collection()
    if collection is None:
        return
    collection.create_index([("timestamp", -1)])
    collection.create_index([("userId", 1), ("timestamp", -1)])
