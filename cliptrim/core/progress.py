"""Export progress estimation.

Only the encoding phase reports anything granular, so the overall percentage
is split into bands:

    preparing   0 -> 20   (20 once the input is staged)
    encoding   20 -> 80   (elapsed encode time / selection duration)
    finalizing 90         (output retrieval started)
    done      100         (success only)

The tracker is fed raw engine log lines and never touches job state; the
orchestrator only forwards the values it returns.
"""

from __future__ import annotations

import re
from typing import Optional

STAGED = 20.0
ENCODE_SPAN = 60.0
ENCODED = STAGED + ENCODE_SPAN
FINALIZING = 90.0
COMPLETE = 100.0

# Also matches the ``out_time=`` key of ``-progress`` output.
TIME_MARKER = re.compile(r"time=(\d{2}):(\d{2}):(\d{2}\.\d{2})")


def parse_elapsed(line: str) -> Optional[float]:
    """Seconds from a ``time=HH:MM:SS.ss`` marker, or None."""
    match = TIME_MARKER.search(line)
    if match is None:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


class ProgressTracker:
    def __init__(self, selection_duration: float):
        if selection_duration <= 0:
            raise ValueError("selection_duration must be positive")
        self.selection_duration = selection_duration
        self._percent = 0.0

    @property
    def percent(self) -> float:
        return self._percent

    def _advance(self, value: float) -> Optional[float]:
        value = min(COMPLETE, value)
        if value <= self._percent:
            return None
        self._percent = value
        return value

    def staged(self) -> Optional[float]:
        return self._advance(STAGED)

    def feed(self, line: str) -> Optional[float]:
        """Return the new percentage if ``line`` moved it forward."""
        elapsed = parse_elapsed(line)
        if elapsed is None:
            return None
        ratio = min(elapsed / self.selection_duration, 1.0)
        return self._advance(STAGED + ratio * ENCODE_SPAN)

    def encoded(self) -> Optional[float]:
        return self._advance(ENCODED)

    def finalizing(self) -> Optional[float]:
        return self._advance(FINALIZING)

    def completed(self) -> Optional[float]:
        return self._advance(COMPLETE)


__all__ = ["ProgressTracker", "parse_elapsed", "TIME_MARKER"]
