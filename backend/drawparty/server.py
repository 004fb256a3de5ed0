from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Mapping

from flask import Flask, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.service import GameService
from .realtime.feed import SocketIOFeed
from .realtime.handlers import register_socketio_handlers
from .routes.health import bp as health_bp
from .routes.rooms import bp as rooms_bp
from .routes.signaling import bp as signaling_bp


logger = logging.getLogger(__name__)

EXTENSION = "drawparty"


def _async_mode(app: Flask) -> str:
    configured = str(app.config.get("SOCKETIO_ASYNC_MODE") or os.environ.get("SOCKETIO_ASYNC_MODE", "")).strip()
    if configured:
        return configured
    # eventlet is unreliable on Windows and on Python >= 3.13
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def _start_reaper(socketio: SocketIO, service: GameService, interval_sec: int) -> None:
    def _runner() -> None:
        while True:
            socketio.sleep(interval_sec)
            try:
                reaped = service.reap_stale_rooms()
            except Exception:
                logger.exception("Room reaper pass failed")
                continue
            if reaped:
                logger.info("Reaped %d stale rooms", reaped)

    socketio.start_background_task(_runner)


def create_app(overrides: Mapping[str, Any] | None = None) -> tuple[Flask, SocketIO]:
    dist_dir = Path(__file__).resolve().parents[2] / "frontend" / "dist"

    static_folder = str(dist_dir) if dist_dir.exists() else None
    static_url_path = "/" if dist_dir.exists() else None

    app = Flask(
        __name__,
        static_folder=static_folder,
        static_url_path=static_url_path,
    )
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    async_mode = _async_mode(app)
    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=async_mode,
    )

    service = GameService(app.config, feed=SocketIOFeed(socketio))
    app.extensions[EXTENSION] = service

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")
    app.register_blueprint(signaling_bp, url_prefix="/api")

    register_socketio_handlers(socketio, service)

    if app.config.get("REAPER_ENABLED", False):
        _start_reaper(socketio, service, int(app.config["REAPER_INTERVAL_SEC"]))

    if dist_dir.exists():
        @app.get("/")
        def index():
            return send_from_directory(dist_dir, "index.html")

        @app.get("/<path:path>")
        def static_proxy(path: str):
            file_path = dist_dir / path
            if file_path.exists() and file_path.is_file():
                return send_from_directory(dist_dir, path)
            return send_from_directory(dist_dir, "index.html")

    logger.info("DrawParty app created (async_mode=%s)", async_mode)
    return app, socketio
