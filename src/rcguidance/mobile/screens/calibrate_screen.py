"""
Calibrate-camera screen for RC guidance.

Sends single still frames to the server for camera calibration.
"""

import logging
import threading

from kivy.clock import Clock
from kivy.uix.boxlayout import BoxLayout
from kivy.uix.button import Button
from kivy.uix.label import Label
from kivy.uix.screenmanager import Screen
from kivy.uix.textinput import TextInput

from ...core.camera import CameraProvider
from ...core.client import GuidanceClient
from ...core.session import send_calibration_frame
from ..orientation import OrientationLock
from ..widgets.camera_preview import CameraPreview

logger = logging.getLogger(__name__)

PREVIEW_FPS = 15.0


class CalibrateScreen(Screen):
    """
    One-shot capture screen.

    The preview is paused while a picture is being taken so that only one
    thread reads the camera at a time.
    """

    def __init__(
        self,
        camera: CameraProvider,
        orientation: OrientationLock,
        server_config: dict,
        capture_config: dict,
        **kwargs,
    ):
        kwargs.setdefault("name", "calibrate")
        super().__init__(**kwargs)

        self.camera = camera
        self.orientation = orientation
        self.port = server_config.get("port", 5000)
        self.timeout = server_config.get("timeout", 5.0)
        self.filename = capture_config.get("calibration_filename", "calib.jpg")

        self._preview_event = None
        self._sending = False
        self._active = False

        self._create_ui()

    def _create_ui(self):
        layout = BoxLayout(orientation="vertical", padding=[16, 16, 16, 16], spacing=10)

        self.ip_input = TextInput(
            hint_text="Server IP", multiline=False, size_hint_y=None, height=48
        )
        layout.add_widget(self.ip_input)

        self.preview = CameraPreview(size_hint=(1, 1), fit_mode="contain")
        layout.add_widget(self.preview)

        self.take_btn = Button(text="Take Picture", size_hint_y=None, height=56)
        self.take_btn.bind(on_press=self._on_take)
        layout.add_widget(self.take_btn)

        self.message_label = Label(text="Loading…", size_hint_y=None, height=40)
        layout.add_widget(self.message_label)

        self.add_widget(layout)

    def on_enter(self, *args):
        self._active = True
        self.orientation.acquire()
        if self._sending:
            # _on_sent resumes the preview
            return
        if self.camera.open():
            self.message_label.text = ""
            self.take_btn.disabled = False
            self._start_preview()
        else:
            self.message_label.text = "No camera"
            self.take_btn.disabled = True

    def on_leave(self, *args):
        self._active = False
        self._stop_preview()
        self.orientation.release()
        # Waits for a read in progress on the send thread
        self.camera.release()

    def _start_preview(self):
        if self._preview_event is None:
            self._preview_event = Clock.schedule_interval(
                self._update_preview, 1.0 / PREVIEW_FPS
            )

    def _stop_preview(self):
        if self._preview_event is not None:
            self._preview_event.cancel()
            self._preview_event = None

    def _update_preview(self, dt):
        self.preview.update_frame(self.camera.read())

    def _on_take(self, instance):
        if self._sending:
            return

        server = self.ip_input.text.strip()
        if not server:
            self.message_label.text = "Enter IP"
            return

        self._sending = True
        self.take_btn.disabled = True
        self.message_label.text = "Sending..."
        self._stop_preview()

        threading.Thread(target=self._send, args=(server,), daemon=True).start()

    def _send(self, server: str) -> None:
        """Worker thread: capture one frame and upload it."""
        try:
            with GuidanceClient(server, port=self.port, timeout=self.timeout) as client:
                message = send_calibration_frame(
                    client, self.camera, filename=self.filename
                )
        except Exception as e:
            logger.error(f"Calibration send error: {e}")
            message = f"Error: {e}"
        Clock.schedule_once(lambda dt: self._on_sent(message), 0)

    def _on_sent(self, message: str) -> None:
        self._sending = False
        self.message_label.text = message
        if self._active and self.camera.open():
            self.take_btn.disabled = False
            self._start_preview()
