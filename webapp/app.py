from __future__ import annotations

import os
import socket
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import Flask, jsonify


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config.update(
        APP_NAME=os.environ.get("APP_NAME", "flask-app"),
        APP_VERSION=os.environ.get("APP_VERSION", "latest"),
        STARTED_AT=datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )
    if config:
        app.config.update(config)

    @app.get("/")
    def index():
        return jsonify(
            message=f"Hello from {app.config['APP_NAME']}!",
            version=app.config["APP_VERSION"],
            hostname=socket.gethostname(),
        )

    @app.get("/status")
    def status():
        return jsonify(
            status="healthy",
            service=app.config["APP_NAME"],
            version=app.config["APP_VERSION"],
            started_at=app.config["STARTED_AT"],
        )

    @app.errorhandler(404)
    def not_found(_error):
        return jsonify(status="error", error="not found"), 404

    return app
