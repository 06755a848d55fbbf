from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from .models.common import AssetFields, EditableFlags
from .models.results import EngineUpdate, FieldWriteBack, ResolvedValues
from .models.schedule import ScheduleRow, ScheduleState


class ScheduleRequest(BaseModel):
    asset: AssetFields


class ScheduleResponse(BaseModel):
    rows: List[ScheduleRow]
    total_depreciation: float


class ResolveRequest(BaseModel):
    asset: AssetFields
    flags: EditableFlags = Field(default_factory=EditableFlags)


class ResolveResponse(BaseModel):
    resolved: ResolvedValues
    write_backs: List[FieldWriteBack]


class CeilingRequest(BaseModel):
    rows: List[ScheduleRow]


class SessionCreateRequest(BaseModel):
    asset: AssetFields = Field(default_factory=AssetFields)
    flags: EditableFlags = Field(default_factory=EditableFlags)


class SessionResponse(BaseModel):
    session_id: str
    asset: AssetFields
    flags: EditableFlags
    update: EngineUpdate


class SessionStateResponse(BaseModel):
    session_id: str
    asset: AssetFields
    flags: EditableFlags
    state: ScheduleState


class FieldChangeRequest(BaseModel):
    changes: Dict[str, Any]
    confirm_destructive: bool = Field(default=False, description="Answer to the discard-manual-schedule prompt")


class PinRequest(BaseModel):
    pinned: Optional[bool] = Field(default=None, description="Toggle when omitted")
    confirm_destructive: bool = False


class RowUpdateRequest(BaseModel):
    depreciation: Union[float, str]
