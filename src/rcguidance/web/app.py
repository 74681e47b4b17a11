"""
Flask application factory for the guidance development server.

Stands in for the real guidance server so the client can be exercised
end to end without marker detection running:
- Accepts session initialization
- Accepts and counts streamed frames
- Serves configured completion times
"""

import logging
import threading
from pathlib import Path

from flask import Flask

from ..core.config import Config

logger = logging.getLogger(__name__)


class DevServerState:
    """Mutable state shared by the API routes."""

    def __init__(self, times: dict | None = None, nest_finish: bool = False):
        self.times = dict(times or {})
        self.nest_finish = nest_finish
        self.session: dict[str, str] | None = None
        self.frames_received = 0
        self._lock = threading.Lock()

    def reset(self, session: dict[str, str]) -> None:
        with self._lock:
            self.session = session
            self.frames_received = 0

    def record_frame(self) -> int:
        """Count one received frame. Returns the new total."""
        with self._lock:
            self.frames_received += 1
            return self.frames_received


def create_app(config: Config | None = None) -> Flask:
    """
    Application factory for Flask app.

    Args:
        config: Guidance configuration, or None to load defaults

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    if config is None:
        config = Config()

    dev_config = config["dev_server"]
    app.config["RCGUIDANCE_CONFIG"] = config
    app.config["DEV_STATE"] = DevServerState(
        times=dev_config.get("times") or {},
        nest_finish=dev_config.get("nest_finish", False),
    )
    if dev_config.get("save_frames", False):
        frames_dir = Path(dev_config.get("frames_directory", "received_frames"))
        frames_dir.mkdir(parents=True, exist_ok=True)
        app.config["FRAMES_DIRECTORY"] = frames_dir
    else:
        app.config["FRAMES_DIRECTORY"] = None

    from .routes import api

    app.register_blueprint(api.bp, url_prefix="/api")

    @app.route("/health")
    def health() -> dict:
        """Health check endpoint."""
        state = app.config["DEV_STATE"]
        return {
            "status": "ok",
            "version": config.get("app.version", "0.1.0"),
            "session_active": state.session is not None,
            "frames_received": state.frames_received,
        }

    logger.info("Dev server app created")
    return app
