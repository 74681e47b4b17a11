"""
Session screen for RC guidance.

Shows the camera preview, streams frames to the server while the session
is running, and fetches the results when the operator ends it.
"""

import logging
import threading
from typing import Callable

from kivy.clock import Clock
from kivy.uix.boxlayout import BoxLayout
from kivy.uix.button import Button
from kivy.uix.label import Label
from kivy.uix.screenmanager import Screen

from ...core.camera import CameraProvider
from ...core.results import RankedResult
from ...core.session import GuidanceSession, SessionError
from ..orientation import OrientationLock
from ..widgets.camera_preview import CameraPreview

logger = logging.getLogger(__name__)

PREVIEW_FPS = 15.0


class SessionScreen(Screen):
    """
    Live session screen.

    Layout:
    ┌─────────────────────────────────────┐
    │  CAMERA PREVIEW                     │
    │                                     │
    │  Status: Sending images             │
    │  [Start Session]   [End Session]    │
    └─────────────────────────────────────┘
    """

    def __init__(
        self,
        camera: CameraProvider,
        orientation: OrientationLock,
        on_results: Callable[[list[RankedResult]], None],
        **kwargs,
    ):
        kwargs.setdefault("name", "session")
        super().__init__(**kwargs)

        self.camera = camera
        self.orientation = orientation
        self.on_results = on_results

        self.session: GuidanceSession | None = None
        self._waiting = False
        self._preview_event = None

        self._create_ui()

    def _create_ui(self):
        layout = BoxLayout(orientation="vertical", padding=[8, 8, 8, 8], spacing=8)

        self.preview = CameraPreview(size_hint=(1, 2), fit_mode="contain")
        layout.add_widget(self.preview)

        self.status_label = Label(text="Status: Initializing camera…", size_hint_y=None, height=40)
        layout.add_widget(self.status_label)

        controls = BoxLayout(orientation="horizontal", spacing=20, size_hint=(1, 1))
        self.start_btn = Button(text="Start Session")
        self.start_btn.bind(on_press=self._on_start)
        controls.add_widget(self.start_btn)

        self.end_btn = Button(text="End Session")
        self.end_btn.bind(on_press=self._on_end)
        controls.add_widget(self.end_btn)
        layout.add_widget(controls)

        self.add_widget(layout)
        self._refresh_controls()

    def set_session(self, session: GuidanceSession) -> None:
        self.session = session

    def _set_status(self, status: str) -> None:
        self.status_label.text = f"Status: {status}"

    def _refresh_controls(self) -> None:
        sending = self.session is not None and self.session.is_sending
        ready = self.camera.is_open and self.session is not None
        self.start_btn.disabled = self._waiting or sending or not ready
        self.end_btn.disabled = self._waiting or not sending

    def on_enter(self, *args):
        self.orientation.acquire()
        if self.camera.open():
            self._set_status("Camera ready")
            self._preview_event = Clock.schedule_interval(
                self._update_preview, 1.0 / PREVIEW_FPS
            )
        else:
            self._set_status("No camera found")
        self._refresh_controls()

    def on_leave(self, *args):
        if self._preview_event is not None:
            self._preview_event.cancel()
            self._preview_event = None
        if self.session is not None:
            self.session.close()
            self.session = None
        self.camera.release()
        self.orientation.release()

    def _update_preview(self, dt):
        self.preview.update_frame(self.camera.read())

    def _on_start(self, instance):
        if self.session is None or self.session.is_sending:
            return
        if self.session.start_capture():
            self._set_status("Sending images")
        else:
            self._set_status("Camera not ready")
        self._refresh_controls()

    def _on_end(self, instance):
        if self.session is None or self._waiting:
            return

        self._waiting = True
        self._set_status("Fetching results…")
        # Stop ticking on the main thread before handing off to the worker
        self.session.stop_capture()
        self._refresh_controls()

        threading.Thread(
            target=self._fetch_results, args=(self.session,), daemon=True
        ).start()

    def _fetch_results(self, session: GuidanceSession) -> None:
        """Worker thread: fetch and rank the times."""
        try:
            results = session.end()
        except SessionError as e:
            message = str(e)
            Clock.schedule_once(lambda dt: self._on_fetch_failed(message), 0)
            return

        Clock.schedule_once(lambda dt: self._on_fetched(results), 0)

    def _on_fetched(self, results: list[RankedResult]) -> None:
        self._waiting = False
        self._set_status("Idle")
        self.on_results(results)

    def _on_fetch_failed(self, message: str) -> None:
        self._waiting = False
        self._set_status(message)
        # Capture was stopped; allow restarting and retrying the fetch
        self.end_btn.disabled = False
        self.start_btn.disabled = not self.camera.is_open
