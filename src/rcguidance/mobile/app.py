"""
RC Guidance Kivy Application - operator client for the guidance server.

Main entry point for the Kivy-based mobile/desktop application.
"""

import os
import platform as sys_platform

# Prevent Kivy from consuming command-line arguments
os.environ["KIVY_NO_ARGS"] = "1"

from kivy.app import App
from kivy.clock import Clock
from kivy.core.window import Window
from kivy.logger import Logger
from kivy.uix.screenmanager import ScreenManager

from ..core.camera import Camera
from ..core.client import SessionParameters
from ..core.config import Config
from ..core.results import RankedResult
from ..core.session import GuidanceSession
from .orientation import OrientationLock
from .screens import (
    CalibrateScreen,
    CreateSessionScreen,
    ResultsScreen,
    SessionScreen,
    StartScreen,
)


class RCGuidanceApp(App):
    """
    Main RC guidance Kivy application.

    Coordinates:
    - Camera (opened by capture screens, released when they are left)
    - Session lifecycle (via GuidanceSession)
    - Screen navigation (via ScreenManager)
    """

    def __init__(self, app_config: Config | None = None, **kwargs):
        """
        Initialize the app.

        Args:
            app_config: Optional Config object. If not provided, loads from default location.
        """
        super().__init__(**kwargs)

        # app_config avoids clashing with Kivy's own App.config
        if app_config is None:
            app_config = Config()
        self.app_config = app_config

        self.platform_type = self._detect_platform()

        self.camera: Camera | None = None
        self.orientation: OrientationLock | None = None
        self.screen_manager: ScreenManager | None = None

        Logger.info(f"RCGuidance: Initialized on {sys_platform.system()} ({self.platform_type})")

    def _detect_platform(self) -> str:
        """Detect current platform type."""
        if sys_platform.system() == "Linux":
            try:
                import android  # noqa: F401
                return "android"
            except ImportError:
                return "desktop"
        return "desktop"

    def build(self):
        """Build the application UI."""
        if self.platform_type == "desktop":
            Window.size = (1024, 640)
        self.title = self.app_config.get("app.name", "RC Vehicle Guidance")

        camera_config = dict(self.app_config["camera"])
        if self.platform_type == "android":
            camera_config["backend"] = "CAP_ANDROID"
        self.camera = Camera(camera_config)
        self.orientation = OrientationLock(self.platform_type)

        self.screen_manager = ScreenManager()
        self.screen_manager.add_widget(StartScreen())
        self.screen_manager.add_widget(
            CreateSessionScreen(
                session_factory=self._new_session,
                on_session_ready=self._show_session,
            )
        )
        self.screen_manager.add_widget(
            SessionScreen(
                camera=self.camera,
                orientation=self.orientation,
                on_results=self._show_results,
            )
        )
        self.screen_manager.add_widget(
            CalibrateScreen(
                camera=self.camera,
                orientation=self.orientation,
                server_config=self.app_config["server"],
                capture_config=self.app_config["capture"],
            )
        )
        self.screen_manager.add_widget(ResultsScreen(on_restart=self._restart))

        return self.screen_manager

    def _new_session(self, params: SessionParameters) -> GuidanceSession:
        return GuidanceSession(params, self.app_config.as_dict, self.camera, Clock)

    def _show_session(self, session: GuidanceSession) -> None:
        self.screen_manager.get_screen("session").set_session(session)
        self.screen_manager.current = "session"

    def _show_results(self, results: list[RankedResult]) -> None:
        self.screen_manager.get_screen("results").set_results(results)
        self.screen_manager.current = "results"

    def _restart(self) -> None:
        self.screen_manager.current = "start"

    def on_stop(self):
        """Called when the application stops."""
        Logger.info("RCGuidance: Application stopping")

        if self.screen_manager is not None:
            current = self.screen_manager.current_screen
            if current is not None:
                current.dispatch("on_leave")

        if self.camera is not None:
            self.camera.release()

        Logger.info("RCGuidance: Application stopped")


def run_mobile_app(config: Config | None = None):
    """
    Run the RC guidance mobile/desktop Kivy application.

    Args:
        config: Optional Config object.
    """
    app = RCGuidanceApp(app_config=config)
    app.run()
