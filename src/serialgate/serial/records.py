"""
Structured record classification and normalization.

A device line is a record when it is a JSON object. Each field is either a
bare scalar or an object carrying ``value`` and an optional ``interval``;
both are normalized to {value, interval, timestamp}.
"""

import json
import math
import threading
import time
from typing import Any, Callable, Optional

from serialgate.core.models import (
    ABSENT,
    IntervalField,
    Record,
    RecordField,
    ScalarField,
)


def _reject_constant(name: str) -> None:
    raise ValueError(f"Non-standard JSON constant: {name}")


def _parse_float(text: str) -> float:
    value = float(text)
    if math.isinf(value):
        raise ValueError(f"Number out of range: {text}")
    return value


def _decode(line: str) -> Optional[dict[str, Any]]:
    try:
        data = json.loads(line, parse_constant=_reject_constant, parse_float=_parse_float)
    except (ValueError, RecursionError):
        return None
    return data if isinstance(data, dict) else None


def is_record(line: str) -> bool:
    """Return True if the line is a well-formed structured record."""
    return _decode(line) is not None


def classify_field(raw: Any) -> RecordField:
    """Pick the field variant once, at classification time."""
    if isinstance(raw, dict) and "value" in raw:
        return IntervalField(value=raw["value"], interval=raw.get("interval", ABSENT))
    return ScalarField(value=raw)


def parse_record(line: str, timestamp: int) -> Optional[Record]:
    """
    Parse a line into a Record.

    Args:
        line: Framed device line
        timestamp: Receipt time in epoch milliseconds, applied to all fields

    Returns:
        Record, or None if the line is not a well-formed record
    """
    data = _decode(line)
    if data is None:
        return None
    return Record(
        fields={name: classify_field(raw) for name, raw in data.items()},
        timestamp=timestamp,
    )


def _now_ms() -> int:
    return int(time.time() * 1000)


class RecordClock:
    """Receipt clock that never goes backwards for one session."""

    def __init__(self, source: Callable[[], int] = _now_ms):
        self._source = source
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, self._source())
            return self._last
