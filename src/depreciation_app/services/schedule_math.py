"""Straight-line schedule generation and manual schedule editing.

Every function here is pure: rows are never mutated, a new list is returned.
Amounts are rounded to cents as they are produced, and the final period of a
generated schedule absorbs the accumulated rounding so that the charges always
sum to ``cost - residual``.
"""

from __future__ import annotations

import math
import re
from datetime import date
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from ..models.common import DepreciationFrequency
from ..models.schedule import ScheduleRow
from .formatting import MONTH_NAMES, acquire_period, clamp_non_negative, round_to_two

_LEADING_YEAR = re.compile(r"\s*(-?\d+)")


def _year_label(year: int, months: int) -> str:
    if months == 12:
        return str(year)
    return f"{year} ({months} mths)"


def _month_label(period: date) -> str:
    return f"{period.year} {MONTH_NAMES[period.month - 1]}"


def _offset_month_label(year: int, month: int, offset: int) -> str:
    months = month - 1 + offset
    return f"{year + months // 12} {MONTH_NAMES[months % 12]}"


def generate_yearly_schedule(
    cost: float,
    residual: float,
    useful_life_years: int,
    acquire_year: int,
    acquire_month: int,
) -> List[ScheduleRow]:
    if useful_life_years <= 0 or cost <= 0:
        return []
    total_depreciation = cost - residual
    if total_depreciation < 0:
        return []

    total_months = useful_life_years * 12
    monthly_depreciation = total_depreciation / total_months

    schedule: List[ScheduleRow] = []
    remaining_months = total_months
    year = acquire_year
    current_value = cost
    applied = 0.0
    first_year = True

    while remaining_months > 0:
        if first_year:
            months = min(13 - acquire_month, remaining_months)
            first_year = False
        else:
            months = min(12, remaining_months)

        if months == remaining_months:
            depreciation = round_to_two(total_depreciation - applied)
        else:
            depreciation = round_to_two(monthly_depreciation * months)

        applied += depreciation
        current_value = round_to_two(max(current_value - depreciation, residual))
        schedule.append(
            ScheduleRow(
                label=_year_label(year, months),
                depreciation=depreciation,
                net_book_value=current_value,
                months=months,
            )
        )
        remaining_months -= months
        year += 1

    return schedule


def generate_monthly_schedule(
    cost: float,
    residual: float,
    useful_life_months: int,
    acquire_year: int,
    acquire_month: int,
) -> List[ScheduleRow]:
    if useful_life_months <= 0 or cost <= 0:
        return []
    total_depreciation = cost - residual
    if total_depreciation < 0:
        return []

    monthly_depreciation = total_depreciation / useful_life_months
    schedule: List[ScheduleRow] = []
    current_value = cost
    applied = 0.0
    for month_index in range(useful_life_months):
        if month_index == useful_life_months - 1:
            depreciation = round_to_two(total_depreciation - applied)
        else:
            depreciation = round_to_two(monthly_depreciation)

        applied += depreciation
        current_value = round_to_two(max(current_value - depreciation, residual))
        schedule.append(
            ScheduleRow(
                label=_offset_month_label(acquire_year, acquire_month, month_index),
                depreciation=depreciation,
                net_book_value=current_value,
                months=1,
            )
        )
    return schedule


def generate_schedule(
    frequency: DepreciationFrequency,
    cost: float,
    residual: float,
    useful_life: int,
    acquire_date=None,
) -> List[ScheduleRow]:
    year, month = acquire_period(acquire_date)
    if frequency is DepreciationFrequency.MONTHLY:
        return generate_monthly_schedule(cost, residual, useful_life, year, month)
    return generate_yearly_schedule(cost, residual, useful_life, year, month)


def apply_ceiling_rounding(rows: List[ScheduleRow]) -> List[ScheduleRow]:
    """Round every charge but the last up to a whole unit; the last row absorbs the difference."""
    if not rows:
        return list(rows)

    adjustment = 0.0
    charges: List[float] = []
    for row in rows[:-1]:
        ceiled = float(math.ceil(row.depreciation))
        adjustment += row.depreciation - ceiled
        charges.append(ceiled)
    charges.append(round_to_two(rows[-1].depreciation + adjustment))

    current_value = rows[0].net_book_value + rows[0].depreciation
    result: List[ScheduleRow] = []
    for row, charge in zip(rows, charges):
        current_value = round_to_two(current_value - charge)
        result.append(row.model_copy(update={"depreciation": charge, "net_book_value": current_value}))
    return result


def update_editable_row(rows: List[ScheduleRow], index: int, depreciation: float) -> List[ScheduleRow]:
    if index < 0 or index >= len(rows):
        return rows

    updated = list(rows)
    charge = round_to_two(clamp_non_negative(depreciation))
    if index == 0:
        opening_value = updated[0].net_book_value + updated[0].depreciation
    else:
        opening_value = updated[index - 1].net_book_value
    updated[index] = updated[index].model_copy(
        update={
            "depreciation": charge,
            "net_book_value": round_to_two(clamp_non_negative(opening_value - charge)),
        }
    )

    for position in range(index + 1, len(updated)):
        previous = updated[position - 1]
        row = updated[position]
        updated[position] = row.model_copy(
            update={"net_book_value": round_to_two(clamp_non_negative(previous.net_book_value - row.depreciation))}
        )
    return updated


def _leading_year(label: str) -> Optional[int]:
    match = _LEADING_YEAR.match(label)
    if match is None:
        return None
    year = int(match.group(1))
    return year if 1 <= year < 9999 else None


def _next_label(last: Optional[ScheduleRow], is_monthly: bool) -> str:
    today = date.today()
    year = _leading_year(last.label) if last is not None else None
    if is_monthly:
        if year is None:
            return _month_label(today)
        parts = last.label.split()
        month_name = parts[1] if len(parts) > 1 else ""
        month_index = MONTH_NAMES.index(month_name) if month_name in MONTH_NAMES else 0
        return _month_label(date(year, month_index + 1, 1) + relativedelta(months=1))
    if year is None:
        return str(today.year)
    return str(year + 1)


def add_manual_row(rows: List[ScheduleRow], is_monthly: bool) -> List[ScheduleRow]:
    last = rows[-1] if rows else None
    return list(rows) + [
        ScheduleRow(
            label=_next_label(last, is_monthly),
            depreciation=0.0,
            net_book_value=last.net_book_value if last is not None else 0.0,
            months=1 if is_monthly else 12,
        )
    ]


def remove_manual_row(rows: List[ScheduleRow]) -> List[ScheduleRow]:
    if len(rows) <= 1:
        return rows
    return list(rows[:-1])


def schedules_equal(first: List[ScheduleRow], second: List[ScheduleRow], tolerance: float = 0.001) -> bool:
    if len(first) != len(second):
        return False
    for a, b in zip(first, second):
        if (
            a.label != b.label
            or abs(a.depreciation - b.depreciation) > tolerance
            or abs(a.net_book_value - b.net_book_value) > tolerance
        ):
            return False
    return True
