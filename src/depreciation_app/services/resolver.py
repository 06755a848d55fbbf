"""Keep residual value, total depreciation, rate and useful life consistent.

Cost is always external. Any of the four dependent fields may be pinned by the
operator; pinned fields are read but never produced. The order of the steps
matters: pinning exactly one of residual value / total depreciation determines
the other, and a pinned rate together with the useful life outranks a stale
total depreciation when neither of those two is pinned.
"""

from __future__ import annotations

import logging
import math

from ..config import settings
from ..models.common import EditableFlags, FinancialInputs
from ..models.results import ResolvedValues
from .formatting import clamp_non_negative, half_up, round_to_two

logger = logging.getLogger(__name__)


def _finite_or_zero(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def _rate_for(cost: float, residual: float, life: float) -> float:
    try:
        return _finite_or_zero(((cost - residual) / (cost * life)) * 100)
    except ZeroDivisionError:
        return 0.0


def resolve_dependent_values(
    cost: float,
    useful_life: float,
    residual_value: float,
    total_depreciation: float,
    depreciation_rate: float,
    flags: EditableFlags,
    is_monthly: bool,
    default_monthly_life: int = 12,
) -> ResolvedValues:
    resolved = ResolvedValues()
    life = useful_life
    residual = residual_value
    total = total_depreciation
    rate = depreciation_rate

    if cost <= 0:
        if not flags.residual_value:
            resolved.residual_value = 0.0
        if not flags.total_depreciation:
            resolved.total_depreciation = 0.0
        if not flags.depreciation_rate:
            resolved.depreciation_rate = 0.0
        if not flags.useful_life and is_monthly:
            resolved.useful_life = default_monthly_life
        return resolved

    if not flags.residual_value and flags.total_depreciation:
        residual = clamp_non_negative(cost - total)
    elif not flags.total_depreciation and flags.residual_value:
        total = clamp_non_negative(cost - residual)
    elif not flags.residual_value and not flags.total_depreciation:
        if flags.depreciation_rate and life > 0 and rate > 0:
            residual = clamp_non_negative(cost - cost * (rate / 100) * life)
        else:
            residual = clamp_non_negative(cost - total)
        total = clamp_non_negative(cost - residual)

    if not flags.depreciation_rate:
        effective_life = life if life > 0 else (default_monthly_life if is_monthly else life)
        rate = _rate_for(cost, residual, effective_life)
        resolved.depreciation_rate = rate

    if not flags.useful_life:
        fallback = default_monthly_life if is_monthly else life
        # Rate wins over total depreciation when both could determine the life.
        if rate > 0:
            life = (cost - residual) / (cost * (rate / 100))
            if not math.isfinite(life) or life <= 0:
                life = fallback
        elif total > 0:
            try:
                estimated = (cost - residual) / (total / (life or 1))
            except ZeroDivisionError:
                estimated = float("nan")
            life = estimated if math.isfinite(estimated) and estimated > 0 else fallback
        else:
            life = fallback
        life = max(1, int(half_up(life)))
        resolved.useful_life = life

        if not flags.depreciation_rate:
            resolved.depreciation_rate = _rate_for(cost, residual, life)

    if not flags.residual_value:
        residual = round_to_two(clamp_non_negative(residual))
        resolved.residual_value = residual
    if not flags.total_depreciation:
        resolved.total_depreciation = round_to_two(clamp_non_negative(cost - residual))

    return resolved


class DependentValueResolver:
    def __init__(self, default_monthly_life: int | None = None) -> None:
        if default_monthly_life is None:
            default_monthly_life = settings.default_monthly_useful_life
        self.default_monthly_life = default_monthly_life

    def resolve(self, inputs: FinancialInputs, flags: EditableFlags, is_monthly: bool) -> ResolvedValues:
        resolved = resolve_dependent_values(
            cost=inputs.cost,
            useful_life=inputs.useful_life,
            residual_value=inputs.residual_value,
            total_depreciation=inputs.total_depreciation,
            depreciation_rate=inputs.depreciation_rate,
            flags=flags,
            is_monthly=is_monthly,
            default_monthly_life=self.default_monthly_life,
        )
        logger.debug("Resolved dependent values for cost %.2f: %s", inputs.cost, resolved.model_dump(exclude_none=True))
        return resolved
