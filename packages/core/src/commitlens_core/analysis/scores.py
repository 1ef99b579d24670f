"""Score normalisation: every raw score becomes an integer in [0, 100].

Models answer on a 0–10 scale, a 0–100 scale, or as a fraction ("7/10"),
and sometimes as a string. normalize_score() is the single place where such
a value turns into an int; nothing else in the interpreter converts scores.
"""

from __future__ import annotations

import math
import re

_NUMBER_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)?")
_FRACTION_RE = re.compile(r"([-+]?\d+(?:[.,]\d+)?)\s*/\s*(\d+(?:[.,]\d+)?)")
_PERCENT_RE = re.compile(r"([-+]?\d+(?:[.,]\d+)?)\s*%")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _to_float(text: str) -> float:
    return float(text.replace(",", "."))


def parse_number(raw) -> float | None:
    """Return the first number in raw, or None. Booleans are not numbers."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        try:
            return float(raw)
        except OverflowError:
            # int too large for a float
            return math.inf if raw > 0 else -math.inf
    if isinstance(raw, str):
        match = _NUMBER_RE.search(raw)
        return _to_float(match.group(0)) if match else None
    return None


def _as_percentage(raw: str) -> float | None:
    """Read "7/10" or "85%" forms as a percentage."""
    match = _FRACTION_RE.search(raw)
    if match:
        denominator = _to_float(match.group(2))
        if denominator <= 0:
            return None
        return _to_float(match.group(1)) / denominator * 100
    match = _PERCENT_RE.search(raw)
    if match:
        return _to_float(match.group(1))
    return None


def normalize_score(raw) -> int:
    """Map a raw score to an integer in [0, 100].

    (0, 10]   → multiplied by 10, rounded half-up
    (10, 100] → rounded half-up
    > 100     → 100
    anything else (≤ 0, NaN, booleans, unparsable) → 0

    Fractions and percentages in strings are already on the 0–100 scale and
    only get rounded and clamped.
    """
    if isinstance(raw, str):
        percentage = _as_percentage(raw)
        if percentage is not None:
            if math.isnan(percentage) or percentage <= 0:
                return 0
            if percentage >= 100:
                return 100
            return round_half_up(percentage)

    value = parse_number(raw)
    if value is None or math.isnan(value) or value <= 0:
        return 0
    if value <= 10:
        return round_half_up(value * 10)
    if value <= 100:
        return round_half_up(value)
    return 100
