from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Tuple, Union

from dateutil import parser as date_parser

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

_DISALLOWED = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


def _parse_number(value) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    match = _LEADING_NUMBER.match(_DISALLOWED.sub("", str(value)))
    if match is None:
        return 0.0
    parsed = float(match.group(0))
    return parsed if math.isfinite(parsed) else 0.0


def parse_currency(value) -> float:
    return _parse_number(value)


def parse_rate(value) -> float:
    return _parse_number(value)


def half_up(value: float) -> float:
    """Round to the nearest integer with halves going up (no banker's rounding)."""
    return float(math.floor(value + 0.5))


def round_to_two(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


def clamp_non_negative(value: float) -> float:
    return 0.0 if value < 0 else value


def format_currency(value: float) -> str:
    if not math.isfinite(value):
        value = 0.0
    return f"{round_to_two(value):.2f}"


def format_rate(value: float) -> str:
    if not math.isfinite(value):
        return "0"
    return str(int(half_up(value)))


def acquire_period(acquire_date: Union[date, str, None]) -> Tuple[int, int]:
    """Year and month of acquisition; falls back to January of the current year."""
    if isinstance(acquire_date, (date, datetime)):
        return acquire_date.year, acquire_date.month
    if acquire_date:
        try:
            parsed = date_parser.isoparse(str(acquire_date))
        except ValueError:
            try:
                parsed = date_parser.parse(str(acquire_date))
            except (ValueError, OverflowError):
                parsed = None
        if parsed is not None:
            return parsed.year, parsed.month
    return date.today().year, 1
