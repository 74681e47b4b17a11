"""
RC Guidance - client for the RC vehicle guidance server

Creates tracking sessions on a guidance server, streams camera frames to
it, and ranks the per-vehicle completion times it reports.
"""

__version__ = "0.1.0"
__author__ = "RC Guidance Team"

from .core.results import RankedResult, TimingEntry, rank_entries, rank_times

__all__ = ["RankedResult", "TimingEntry", "rank_entries", "rank_times", "__version__"]
