"""
Results screen for RC guidance.

Lists the ranked completion times returned at the end of a session.
"""

import logging
from typing import Callable

from kivy.uix.boxlayout import BoxLayout
from kivy.uix.button import Button
from kivy.uix.label import Label
from kivy.uix.screenmanager import Screen
from kivy.uix.scrollview import ScrollView

from ...core.results import RankedResult

logger = logging.getLogger(__name__)


class ResultItem(BoxLayout):
    """Single ranked row: rank, identifier and time label."""

    def __init__(self, result: RankedResult, **kwargs):
        kwargs.setdefault("orientation", "horizontal")
        kwargs.setdefault("size_hint_y", None)
        kwargs.setdefault("height", 60)
        kwargs.setdefault("padding", [10, 5, 10, 5])
        super().__init__(**kwargs)

        self.add_widget(Label(text=f"{result.rank}.", size_hint_x=0.15, font_size="16sp"))

        info = BoxLayout(orientation="vertical", size_hint_x=0.85)
        title = Label(
            text=result.identifier,
            font_size="16sp",
            bold=True,
            halign="left",
            valign="middle",
        )
        title.bind(size=title.setter("text_size"))
        info.add_widget(title)

        subtitle = Label(
            text=result.label,
            font_size="13sp",
            color=(0.7, 0.7, 0.7, 1) if result.is_finished else (0.9, 0.5, 0.2, 1),
            halign="left",
            valign="middle",
        )
        subtitle.bind(size=subtitle.setter("text_size"))
        info.add_widget(subtitle)

        self.add_widget(info)


class ResultsScreen(Screen):
    """Ranked results with a Restart button back to the start screen."""

    def __init__(self, on_restart: Callable[[], None], **kwargs):
        kwargs.setdefault("name", "results")
        super().__init__(**kwargs)

        self.on_restart = on_restart

        layout = BoxLayout(orientation="vertical", padding=[10, 10, 10, 10], spacing=10)

        header = Label(text="Results", font_size="20sp", bold=True, size_hint_y=None, height=50)
        layout.add_widget(header)

        scroll_view = ScrollView(size_hint=(1, 1))
        self.list_layout = BoxLayout(orientation="vertical", size_hint_y=None, spacing=5)
        self.list_layout.bind(minimum_height=self.list_layout.setter("height"))
        scroll_view.add_widget(self.list_layout)
        layout.add_widget(scroll_view)

        restart_btn = Button(text="Restart", size_hint_y=None, height=56)
        restart_btn.bind(on_press=lambda x: self.on_restart())
        layout.add_widget(restart_btn)

        self.add_widget(layout)

    def set_results(self, results: list[RankedResult]) -> None:
        """Replace the displayed ranking."""
        self.list_layout.clear_widgets()

        if not results:
            empty = Label(
                text="No results reported.",
                font_size="14sp",
                size_hint_y=None,
                height=100,
            )
            self.list_layout.add_widget(empty)
            return

        for result in results:
            self.list_layout.add_widget(ResultItem(result))

        logger.info(f"Displaying {len(results)} results")
