"""
Completion-time results and their ranking.

The guidance server reports one time token per vehicle, either as a flat
JSON object or wrapped under a single "finish" key whose value is a text
blob of ``identifier: token`` pairs. This module decodes both shapes and
ranks the vehicles: finished vehicles first, fastest to slowest, then the
vehicles that have not finished in the order the server listed them.
"""

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

logger = logging.getLogger(__name__)

FINISH_KEY = "finish"
UNFINISHED_LABEL = "has not finished"
UNFINISHED = math.inf

# identifier ":" token, where the token runs up to the next comma or brace.
_PAIR_RE = re.compile(r"""["']?(\w+)["']?\s*:\s*([^,}]+)""")


class ResultsFormatError(ValueError):
    """Raised when a get_times response body is not a JSON object."""


@dataclass(frozen=True)
class TimingEntry:
    """A vehicle identifier and the raw time token reported for it."""

    identifier: str
    token: str

    @property
    def seconds(self) -> float:
        """Parsed duration, or ``math.inf`` if the vehicle has not finished."""
        return parse_time_token(self.token)

    @property
    def is_finished(self) -> bool:
        return self.seconds != UNFINISHED


@dataclass(frozen=True)
class RankedResult:
    """
    One row of the results table.

    Attributes:
        rank: 1-based position in the ranking
        identifier: Vehicle/marker identifier
        label: Raw token for finished vehicles, otherwise UNFINISHED_LABEL
        seconds: Parsed duration, ``math.inf`` when unfinished
    """

    rank: int
    identifier: str
    label: str
    seconds: float

    @property
    def is_finished(self) -> bool:
        return self.seconds != UNFINISHED

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "rank": self.rank,
            "identifier": self.identifier,
            "label": self.label,
            "seconds": self.seconds if self.is_finished else None,
        }

    def __str__(self) -> str:
        return f"{self.rank}. {self.identifier}: {self.label}"


def parse_time_token(token: str) -> float:
    """
    Parse a time token such as ``"3.5s"`` or ``"3.5"``.

    Args:
        token: Raw token text from the server.

    Returns:
        The duration in seconds, or ``UNFINISHED`` (+inf) for anything that
        is not a non-negative finite number with an optional "s" suffix.
        Whitespace around the number and the unit is ignored.
    """
    if not isinstance(token, str):
        return UNFINISHED

    text = token.strip()
    if text.endswith("s"):
        text = text[:-1].rstrip()
    # float() also accepts digit separators, which are not valid times
    if "_" in text:
        return UNFINISHED

    try:
        value = float(text)
    except ValueError:
        return UNFINISHED

    if not math.isfinite(value) or value < 0:
        return UNFINISHED
    return value


def extract_nested_pairs(blob: str) -> list[TimingEntry]:
    """
    Extract ``identifier: token`` pairs from a nested "finish" blob.

    Identifiers are word characters, optionally quoted. Tokens run up to the
    next comma or closing brace and are trimmed of whitespace and quotes.
    Anything that does not match is ignored.

    >>> extract_nested_pairs("{car1: 2.0s, car2: DNF}")
    [TimingEntry(identifier='car1', token='2.0s'), TimingEntry(identifier='car2', token='DNF')]
    """
    entries = []
    for match in _PAIR_RE.finditer(blob):
        identifier = match.group(1)
        token = match.group(2).strip().strip("\"'").strip()
        entries.append(TimingEntry(identifier, token))
    return entries


def _as_token(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def entries_from_mapping(mapping: Mapping[str, Any]) -> list[TimingEntry]:
    """
    Build timing entries from a decoded get_times object.

    Handles both the flat ``{id: token}`` shape and the single-key
    ``{"finish": ...}`` shape, where the nested value is either a text blob
    or an already-structured object.
    """
    if len(mapping) == 1 and FINISH_KEY in mapping:
        nested = mapping[FINISH_KEY]
        if isinstance(nested, Mapping):
            return entries_from_mapping(nested)
        return extract_nested_pairs(_as_token(nested))

    return [TimingEntry(str(key), _as_token(value)) for key, value in mapping.items()]


def decode_times_payload(body: str) -> list[TimingEntry]:
    """
    Decode a get_times response body.

    Args:
        body: Raw response text.

    Returns:
        Timing entries in server order. An empty body yields no entries.

    Raises:
        ResultsFormatError: If the body is not a JSON object.
    """
    text = body.strip()
    if not text:
        return []

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ResultsFormatError(f"Response is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise ResultsFormatError(
            f"Expected a JSON object, got {type(payload).__name__}"
        )

    return entries_from_mapping(payload)


def order_entries(entries: Iterable[TimingEntry]) -> list[TimingEntry]:
    """
    Order entries finished-first, ascending by time.

    Ties and unfinished entries keep their relative input order.
    """
    finished = []
    unfinished = []
    for entry in entries:
        if entry.is_finished:
            finished.append(entry)
        else:
            unfinished.append(entry)

    # sorted() is stable
    finished = sorted(finished, key=lambda e: e.seconds)
    return finished + unfinished


def rank_entries(entries: Iterable[TimingEntry]) -> list[RankedResult]:
    """Order entries and assign ranks and display labels."""
    ranked = []
    for position, entry in enumerate(order_entries(entries), start=1):
        seconds = entry.seconds
        label = entry.token.strip() if seconds != UNFINISHED else UNFINISHED_LABEL
        ranked.append(RankedResult(position, entry.identifier, label, seconds))
    return ranked


def rank_times(mapping: Mapping[str, Any]) -> list[RankedResult]:
    """Rank a decoded get_times mapping. Convenience wrapper for both shapes."""
    entries = entries_from_mapping(mapping)
    ranked = rank_entries(entries)
    logger.debug(
        f"Ranked {len(ranked)} vehicles "
        f"({sum(1 for r in ranked if r.is_finished)} finished)"
    )
    return ranked
