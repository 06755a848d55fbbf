from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel

from .schedule import ScheduleState


class ResolvedValues(BaseModel):
    """Values derived for unpinned fields; pinned fields stay ``None``."""

    useful_life: Optional[float] = None
    residual_value: Optional[float] = None
    depreciation_rate: Optional[float] = None
    total_depreciation: Optional[float] = None


class FieldWriteBack(BaseModel):
    field: str
    value: Union[int, str]


class EngineUpdate(BaseModel):
    state: ScheduleState
    write_backs: List[FieldWriteBack] = []
    reverted: bool = False

    def value_for(self, field: str) -> Optional[Union[int, str]]:
        for write_back in self.write_backs:
            if write_back.field == field:
                return write_back.value
        return None
