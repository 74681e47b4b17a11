"""Screen modules for the RC guidance mobile UI."""

from .calibrate_screen import CalibrateScreen
from .create_session_screen import CreateSessionScreen
from .results_screen import ResultsScreen
from .session_screen import SessionScreen
from .start_screen import StartScreen

__all__ = [
    "CalibrateScreen",
    "CreateSessionScreen",
    "ResultsScreen",
    "SessionScreen",
    "StartScreen",
]
