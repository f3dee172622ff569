"""Flask application factory and HTTP routes."""

from __future__ import annotations

import logging

from flask import Flask, abort, jsonify, send_from_directory

from ..config import AppConfig
from ..pipeline import RequestPipeline, TriggerChannel
from ..registry import SessionRegistry

LOGGER = logging.getLogger(__name__)


def create_web_app(
    config: AppConfig,
    registry: SessionRegistry,
    channel: TriggerChannel,
    pipeline: RequestPipeline,
) -> Flask:
    static_folder = config.static_path

    app = Flask(__name__, static_folder=None)

    @app.get("/")
    def index():
        if not (static_folder / "index.html").is_file():
            abort(404)
        return send_from_directory(static_folder, "index.html")

    @app.get("/<path:filename>")
    def static_files(filename: str):
        return send_from_directory(static_folder, filename)

    @app.get("/api/measurements")
    def api_measurements():
        return jsonify([record.to_dict() for record in registry.history()])

    @app.get("/api/status")
    def api_status():
        return jsonify(
            {
                "clients": registry.live_count(),
                "measurements": registry.history_size(),
                "state": pipeline.state.value,
                "pending_triggers": channel.pending(),
                "runs_failed": pipeline.runs_failed,
                "interval_minutes": config.scheduler.interval_minutes
                if config.scheduler.enabled
                else None,
                "websocket": {"port": config.websocket.port, "path": config.websocket.path},
            }
        )

    @app.post("/api/manual/speedtest")
    def api_manual_speedtest():
        queued = channel.offer("http")
        status = "queued" if queued else "coalesced"
        LOGGER.info("Manual speedtest requested over HTTP (%s)", status)
        return jsonify({"status": status, "task": "speedtest"}), 202

    return app
