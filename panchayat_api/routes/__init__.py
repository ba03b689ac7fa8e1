"""Blueprint registration helper."""

from __future__ import annotations

from flask import Flask, jsonify

from .admin import bp as admin_bp
from .contact import bp as contact_bp
from .files import bp as files_bp
from .otp import bp as otp_bp


def register_routes(app: Flask) -> None:
    """Register all application blueprints on the provided Flask app."""
    app.register_blueprint(otp_bp)
    app.register_blueprint(files_bp)
    app.register_blueprint(contact_bp)
    app.register_blueprint(admin_bp)

    @app.get("/")
    def index():
        return jsonify(message="Hello from the Digital E-Gram Panchayat API"), 200
