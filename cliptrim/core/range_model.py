"""Selection range model.

Two bounds on a 0-100 scale mapped onto absolute seconds against the media
duration. Pure state, no Qt: the session forwards edits here and reads the
resolved times back for preview and export.

Invariant: ``0 <= start_fraction < end_fraction <= 100``. Writes that would
break it are rejected and leave the range unchanged.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Tuple, Union

from ..errors import ErrCode, TrimError
from ..utils.timefmt import format_time, parse_time

MIN_FRACTION = 0.0
MAX_FRACTION = 100.0


class Bound(str, Enum):
    START = "start"
    END = "end"


BoundLike = Union[Bound, str]


class RangeModel:
    def __init__(self, duration: float = 0.0):
        self.start_fraction = MIN_FRACTION
        self.end_fraction = MAX_FRACTION
        self.duration = 0.0
        self.set_duration(duration)

    def __repr__(self) -> str:
        return (
            f"RangeModel(start={self.start_fraction:.3f}, "
            f"end={self.end_fraction:.3f}, duration={self.duration:.3f})"
        )

    # Lifecycle
    def set_duration(self, seconds: float) -> None:
        try:
            seconds = float(seconds)
        except (TypeError, ValueError):
            seconds = 0.0
        if math.isnan(seconds) or math.isinf(seconds) or seconds < 0:
            seconds = 0.0
        self.duration = seconds

    def reset(self, clear: bool = False) -> None:
        self.start_fraction = MIN_FRACTION
        self.end_fraction = MAX_FRACTION
        if clear:
            self.duration = 0.0

    @property
    def is_actionable(self) -> bool:
        return self.duration > 0

    # Edits
    def set_bound(self, which: BoundLike, fraction: float) -> bool:
        """Move one bound; return False when the write was rejected."""
        which = Bound(which)
        try:
            fraction = float(fraction)
        except (TypeError, ValueError):
            return False
        if math.isnan(fraction):
            return False
        fraction = max(MIN_FRACTION, min(MAX_FRACTION, fraction))
        if which is Bound.START:
            if fraction >= self.end_fraction:
                return False
            self.start_fraction = fraction
        else:
            if fraction <= self.start_fraction:
                return False
            self.end_fraction = fraction
        return True

    def set_bound_by_time(self, which: BoundLike, text: str) -> bool:
        """Parse a ``M:SS.mmm`` string and move the bound to that time.

        Raises TrimError(INVALID_RANGE) on unparsable text and
        TrimError(DURATION_UNKNOWN) before metadata arrived; the range is left
        unchanged in both cases.
        """
        which = Bound(which)
        try:
            seconds = parse_time(text)
        except ValueError as e:
            raise TrimError(
                str(e), code=ErrCode.INVALID_RANGE, ctx={"bound": which.value}
            ) from e
        return self.set_bound(which, self.fraction_for(seconds))

    # Derived reads
    def fraction_for(self, seconds: float) -> float:
        if not self.is_actionable:
            raise TrimError("media duration not known yet", code=ErrCode.DURATION_UNKNOWN)
        return seconds / self.duration * 100.0

    @property
    def start_time(self) -> float:
        return self.start_fraction / 100.0 * self.duration

    @property
    def end_time(self) -> float:
        return self.end_fraction / 100.0 * self.duration

    @property
    def selection_duration(self) -> float:
        return self.end_time - self.start_time

    def absolute_range(self) -> Tuple[float, float]:
        if not self.is_actionable:
            raise TrimError("media duration not known yet", code=ErrCode.DURATION_UNKNOWN)
        start, end = self.start_time, self.end_time
        if end <= start:
            raise TrimError(
                "selection is empty",
                code=ErrCode.INVALID_RANGE,
                ctx={"start": start, "end": end},
            )
        return start, end

    def bound_time(self, which: BoundLike) -> float:
        return self.start_time if Bound(which) is Bound.START else self.end_time

    def bound_text(self, which: BoundLike) -> str:
        return format_time(self.bound_time(which))


__all__ = ["Bound", "RangeModel", "MIN_FRACTION", "MAX_FRACTION"]
