"""
Create-session screen for RC guidance.

Collects the server address and session parameters, then registers the
session with the server off the UI thread.
"""

import logging
import threading
from typing import Callable

from kivy.clock import Clock
from kivy.uix.boxlayout import BoxLayout
from kivy.uix.button import Button
from kivy.uix.label import Label
from kivy.uix.screenmanager import Screen
from kivy.uix.textinput import TextInput

from ...core.client import InvalidSessionInput, SessionParameters
from ...core.session import GuidanceSession, SessionError

logger = logging.getLogger(__name__)


class CreateSessionScreen(Screen):
    """
    Form for a new tracking session.

    Args:
        session_factory: Builds a GuidanceSession from validated parameters.
        on_session_ready: Called on the main thread once the server accepted
            the session.
    """

    def __init__(
        self,
        session_factory: Callable[[SessionParameters], GuidanceSession],
        on_session_ready: Callable[[GuidanceSession], None],
        **kwargs,
    ):
        kwargs.setdefault("name", "create_session")
        super().__init__(**kwargs)

        self.session_factory = session_factory
        self.on_session_ready = on_session_ready
        self._submitting = False

        self._create_ui()

    def _create_ui(self):
        layout = BoxLayout(orientation="vertical", padding=[16, 16, 16, 16], spacing=10)

        self.ip_input = self._add_field(layout, "Server IP")
        self.cars_input = self._add_field(layout, "Number of Vehicles", "int")
        self.markers_input = self._add_field(layout, "Number of Route Markers", "int")
        self.size_input = self._add_field(layout, "Marker Size (cm)", "float")
        self.submit_btn = Button(text="Submit", size_hint_y=None, height=56)
        self.submit_btn.bind(on_press=self._on_submit)
        layout.add_widget(self.submit_btn)

        self.error_label = Label(
            text="",
            color=(0.9, 0.1, 0.1, 1),
            font_size="14sp",
            size_hint_y=None,
            height=40,
        )
        layout.add_widget(self.error_label)
        layout.add_widget(BoxLayout())

        self.add_widget(layout)

    def _add_field(
        self, layout: BoxLayout, hint: str, input_filter: str | None = None
    ) -> TextInput:
        field = TextInput(
            hint_text=hint,
            multiline=False,
            input_filter=input_filter,
            size_hint_y=None,
            height=48,
        )
        layout.add_widget(field)
        return field

    def _on_submit(self, instance):
        if self._submitting:
            return

        try:
            params = SessionParameters.from_form(
                self.ip_input.text,
                self.cars_input.text,
                self.markers_input.text,
                self.size_input.text,
            )
        except InvalidSessionInput as e:
            self.error_label.text = str(e)
            return

        self.error_label.text = ""
        self._submitting = True
        self.submit_btn.disabled = True

        session = self.session_factory(params)
        threading.Thread(
            target=self._initialize, args=(session,), daemon=True
        ).start()

    def _initialize(self, session: GuidanceSession) -> None:
        """Worker thread: register the session with the server."""
        try:
            session.initialize()
        except SessionError as e:
            session.close()
            message = str(e)
            Clock.schedule_once(lambda dt: self._on_failed(message), 0)
            return

        Clock.schedule_once(lambda dt: self._on_initialized(session), 0)

    def _on_initialized(self, session: GuidanceSession) -> None:
        self._submitting = False
        self.submit_btn.disabled = False
        logger.info(f"Session ready on {session.client.base_url}")
        self.on_session_ready(session)

    def _on_failed(self, message: str) -> None:
        self._submitting = False
        self.submit_btn.disabled = False
        self.error_label.text = message
