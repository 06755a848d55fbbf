from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from ..services.formatting import round_to_two


class ScheduleRow(BaseModel):
    label: str
    depreciation: float
    net_book_value: float
    months: int = Field(..., description="Periods of the asset's life consumed by this row")


class ScheduleState(BaseModel):
    rows: List[ScheduleRow] = Field(default_factory=list, description="Committed schedule in effect")
    editable_rows: List[ScheduleRow] = Field(default_factory=list, description="Draft used while editing")
    is_editing: bool = False
    is_manual: bool = False
    is_monthly: bool = False
    ceiling_applied: bool = False

    @property
    def visible_rows(self) -> List[ScheduleRow]:
        return self.editable_rows if self.is_editing else self.rows

    @property
    def total_depreciation(self) -> float:
        return round_to_two(sum(row.depreciation for row in self.visible_rows))
