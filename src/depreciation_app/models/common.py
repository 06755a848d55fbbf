from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..services.formatting import half_up, parse_currency, parse_rate


class DepreciationMethod(str, Enum):
    STRAIGHT_LINE = "Straight Line"
    MANUAL = "Manual"


class DepreciationFrequency(str, Enum):
    YEARLY = "Yearly"
    MONTHLY = "Monthly"


class DependentField(str, Enum):
    USEFUL_LIFE = "useful_life"
    RESIDUAL_VALUE = "residual_value"
    DEPRECIATION_RATE = "depreciation_rate"
    TOTAL_DEPRECIATION = "total_depreciation"


class EditableFlags(BaseModel):
    """Fields the operator has pinned; the resolver never overwrites these."""

    useful_life: bool = False
    residual_value: bool = False
    depreciation_rate: bool = False
    total_depreciation: bool = False

    def is_pinned(self, field: DependentField) -> bool:
        return getattr(self, field.value)

    def with_pin(self, field: DependentField, pinned: bool) -> "EditableFlags":
        return self.model_copy(update={field.value: pinned})


class FinancialInputs(BaseModel):
    cost: float = 0.0
    residual_value: float = 0.0
    useful_life: int = 0
    depreciation_rate: float = 0.0
    total_depreciation: float = 0.0


class AssetFields(BaseModel):
    """Raw field values as the host form holds them."""

    model_config = ConfigDict(extra="forbid")

    cost: str = ""
    residual_value: str = ""
    depreciation_rate: str = ""
    total_depreciation: str = ""
    useful_life: int = Field(0, description="Years when yearly, months when monthly")
    acquire_date: Optional[Union[date, str]] = None
    method: DepreciationMethod = DepreciationMethod.STRAIGHT_LINE
    frequency: DepreciationFrequency = DepreciationFrequency.YEARLY

    @field_validator("cost", "residual_value", "depreciation_rate", "total_depreciation", mode="before")
    @classmethod
    def _stringify(cls, value):
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("useful_life", mode="before")
    @classmethod
    def _absorb_useful_life(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return int(half_up(parse_rate(value)))

    @property
    def is_monthly(self) -> bool:
        return self.frequency is DepreciationFrequency.MONTHLY

    @property
    def is_manual(self) -> bool:
        return self.method is DepreciationMethod.MANUAL

    def to_inputs(self) -> FinancialInputs:
        return FinancialInputs(
            cost=parse_currency(self.cost),
            residual_value=parse_currency(self.residual_value),
            useful_life=self.useful_life,
            depreciation_rate=parse_rate(self.depreciation_rate),
            total_depreciation=parse_currency(self.total_depreciation),
        )
