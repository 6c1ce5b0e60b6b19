"""Time formatting utilities.

`format_time` renders seconds as mm:ss.mmm for the start/end inputs and
`parse_time` reads the same text (plus a few looser variants) back into seconds.
"""

from __future__ import annotations

import re
from decimal import Decimal, ROUND_HALF_UP

__all__ = ["format_time", "parse_time"]

# [[H:]M:]S[.fff]
_TIME_RE = re.compile(r"^\s*(?:(?:(\d+):)?(\d+):)?(\d+)(?:\.(\d*))?\s*$")


def format_time(seconds: float) -> str:
    """Return a human-friendly timestamp mm:ss.mmm for UI labels.

    Uses ROUND_HALF_UP semantics for milliseconds to avoid Python's bankers rounding
    edge cases (e.g., 1.2345 -> 1.235). Accepts negative (clamps display to 0).
    Minutes keep counting past an hour (3662.5 -> 61:02.500).
    """
    if seconds < 0:
        seconds = 0.0
    ms_total = int(
        (Decimal(str(seconds)) * Decimal(1000)).to_integral_value(
            rounding=ROUND_HALF_UP
        )
    )
    m, rem = divmod(ms_total, 60000)
    s, ms = divmod(rem, 1000)
    return f"{m:02d}:{s:02d}.{ms:03d}"


def parse_time(text: str) -> float:
    """Parse ``M:SS.mmm`` (also ``SS.mmm`` and ``H:MM:SS.mmm``) into seconds.

    Fraction digits are read as a decimal fraction, so ``1:05.5`` is 65.5 s.
    Raises ValueError for anything else, including negative values.
    """
    match = _TIME_RE.match(text or "")
    if match is None:
        raise ValueError(f"invalid time: {text!r}")
    hours, minutes, secs, frac = match.groups()
    total = int(hours or 0) * 3600 + int(minutes or 0) * 60 + int(secs)
    if frac:
        total += float(f"0.{frac}")
    return float(total)
