"""Core client logic: configuration, camera, API client, capture loop and results."""

from .config import Config
from .results import RankedResult, TimingEntry, rank_entries, rank_times
from .session import GuidanceSession, SessionError, SessionState

__all__ = [
    "Config",
    "GuidanceSession",
    "RankedResult",
    "SessionError",
    "SessionState",
    "TimingEntry",
    "rank_entries",
    "rank_times",
]
