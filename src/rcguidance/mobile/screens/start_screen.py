"""
Start screen for RC guidance.

Entry point offering session creation and camera calibration.
"""

from kivy.uix.boxlayout import BoxLayout
from kivy.uix.button import Button
from kivy.uix.label import Label
from kivy.uix.screenmanager import Screen


class StartScreen(Screen):
    """Landing screen with the two top-level actions."""

    def __init__(self, **kwargs):
        kwargs.setdefault("name", "start")
        super().__init__(**kwargs)

        layout = BoxLayout(
            orientation="vertical",
            padding=[40, 40, 40, 40],
            spacing=16,
        )
        layout.add_widget(
            Label(text="Guidance for RC vehicles", font_size="22sp", bold=True)
        )

        create_btn = Button(text="Create Session", size_hint_y=None, height=60)
        create_btn.bind(on_press=lambda x: self._go("create_session"))
        layout.add_widget(create_btn)

        calibrate_btn = Button(text="Calibrate Camera", size_hint_y=None, height=60)
        calibrate_btn.bind(on_press=lambda x: self._go("calibrate"))
        layout.add_widget(calibrate_btn)

        layout.add_widget(BoxLayout())
        self.add_widget(layout)

    def _go(self, screen_name: str) -> None:
        self.manager.current = screen_name
