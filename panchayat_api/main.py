"""Flask application setup and blueprint wiring."""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import RequestEntityTooLarge

from panchayat_api import database
from panchayat_api.config import load_config
from panchayat_api.errors import PanchayatError
from panchayat_api.routes import register_routes
from panchayat_api.services import email_service
from panchayat_api.services.file_storage import FileStore
from panchayat_api.services.otp_service import OtpService
from panchayat_api.storage import KeyValueStore, MemoryKeyValueStore, MongoKeyValueStore
from panchayat_api.utils.tokens import now_millis


def build_store(config: Mapping[str, Any]) -> KeyValueStore:
    """Return the key-value store selected by ``ENABLE_MONGODB``."""
    if config["ENABLE_MONGODB"]:
        return MongoKeyValueStore(database.get_database()["kv_store"])
    return MemoryKeyValueStore(quota_bytes=config["STORAGE_QUOTA_BYTES"])


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(PanchayatError)
    def _handle_service_error(error: PanchayatError):
        return jsonify(error.to_dict()), 400

    @app.errorhandler(RequestEntityTooLarge)
    def _handle_request_too_large(error: RequestEntityTooLarge):
        limit = app.config.get("MAX_CONTENT_LENGTH")
        return jsonify(error=f"Upload exceeds the {limit} byte request limit.", code="REQUEST_TOO_LARGE"), 413


def create_app(
    options: Optional[Mapping[str, Any]] = None,
    store: Optional[KeyValueStore] = None,
    send_email: Optional[Callable[[str, str, str], None]] = None,
    clock: Callable[[], int] = now_millis,
) -> Flask:
    """Configure and return the Flask application instance.

    ``store``, ``send_email`` and ``clock`` replace the configured backends,
    which is how the tests run against in-memory state.
    """
    app = Flask(__name__)
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    app.config.update(load_config(options))

    if store is None:
        store = build_store(app.config)
    app.extensions["kv_store"] = store
    app.extensions["otp_service"] = OtpService(
        store,
        send_email=send_email or email_service.send_otp_email,
        clock=clock,
    )
    app.extensions["file_store"] = FileStore(
        store,
        max_record_bytes=app.config["MAX_FILE_RECORD_BYTES"],
        quota_bytes=app.config["STORAGE_QUOTA_BYTES"],
        clock=clock,
    )

    register_error_handlers(app)
    register_routes(app)

    app.logger.info("Using %s for verification codes and files", type(store).__name__)

    # Initialize MongoDB indexes if enabled
    if app.config["ENABLE_MONGODB"]:
        try:
            from panchayat_api.services import audit_service
            with app.app_context():
                audit_service.create_indexes()
                app.logger.info("MongoDB indexes created successfully")
        except Exception as e:
            app.logger.warning(f"Failed to create MongoDB indexes: {e}")

    return app


app = create_app()
