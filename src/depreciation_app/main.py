from __future__ import annotations

import logging
import uuid
from typing import Dict, List

from fastapi import FastAPI, HTTPException
from pydantic import ValidationError

from .config import settings
from .models.common import AssetFields, DependentField
from .models.results import EngineUpdate, FieldWriteBack
from .sample_data import build_sample_fields
from .schemas import (
    CeilingRequest,
    FieldChangeRequest,
    PinRequest,
    ResolveRequest,
    ResolveResponse,
    RowUpdateRequest,
    ScheduleRequest,
    ScheduleResponse,
    SessionCreateRequest,
    SessionResponse,
    SessionStateResponse,
)
from .services.coordinator import ScheduleCoordinator
from .services.formatting import format_currency, format_rate, round_to_two
from .services.resolver import DependentValueResolver
from .services.schedule_math import apply_ceiling_rounding, generate_schedule

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Depreciation Schedule Engine", version="0.1.0")

SESSIONS: Dict[str, ScheduleCoordinator] = {}
resolver = DependentValueResolver()


def _get_session(session_id: str) -> ScheduleCoordinator:
    coordinator = SESSIONS.get(session_id)
    if coordinator is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return coordinator


def _session_response(session_id: str, coordinator: ScheduleCoordinator, update: EngineUpdate) -> SessionResponse:
    return SessionResponse(session_id=session_id, asset=coordinator.fields, flags=coordinator.flags, update=update)


@app.post("/schedule", response_model=ScheduleResponse)
def build_schedule(payload: ScheduleRequest) -> ScheduleResponse:
    asset = payload.asset
    inputs = asset.to_inputs()
    rows = generate_schedule(asset.frequency, inputs.cost, inputs.residual_value, inputs.useful_life, asset.acquire_date)
    return ScheduleResponse(rows=rows, total_depreciation=round_to_two(sum(row.depreciation for row in rows)))


@app.post("/resolve", response_model=ResolveResponse)
def resolve_values(payload: ResolveRequest) -> ResolveResponse:
    resolved = resolver.resolve(payload.asset.to_inputs(), payload.flags, payload.asset.is_monthly)
    write_backs: List[FieldWriteBack] = []
    if resolved.residual_value is not None:
        write_backs.append(FieldWriteBack(field="residual_value", value=format_currency(resolved.residual_value)))
    if resolved.total_depreciation is not None:
        write_backs.append(FieldWriteBack(field="total_depreciation", value=format_currency(resolved.total_depreciation)))
    if resolved.depreciation_rate is not None:
        write_backs.append(FieldWriteBack(field="depreciation_rate", value=format_rate(resolved.depreciation_rate)))
    if resolved.useful_life is not None:
        write_backs.append(FieldWriteBack(field="useful_life", value=max(1, int(resolved.useful_life))))
    return ResolveResponse(resolved=resolved, write_backs=write_backs)


@app.post("/schedule/ceiling", response_model=ScheduleResponse)
def ceiling_schedule(payload: CeilingRequest) -> ScheduleResponse:
    rows = apply_ceiling_rounding(payload.rows)
    return ScheduleResponse(rows=rows, total_depreciation=round_to_two(sum(row.depreciation for row in rows)))


@app.post("/sessions", response_model=SessionResponse)
def create_session(payload: SessionCreateRequest) -> SessionResponse:
    session_id = uuid.uuid4().hex
    coordinator = ScheduleCoordinator(fields=payload.asset, flags=payload.flags)
    SESSIONS[session_id] = coordinator
    logger.info("Opened depreciation session %s", session_id)
    return _session_response(session_id, coordinator, coordinator.refresh())


@app.get("/sessions/{session_id}", response_model=SessionStateResponse)
def get_session(session_id: str) -> SessionStateResponse:
    coordinator = _get_session(session_id)
    return SessionStateResponse(
        session_id=session_id,
        asset=coordinator.fields,
        flags=coordinator.flags,
        state=coordinator.state,
    )


@app.patch("/sessions/{session_id}/fields", response_model=SessionResponse)
def change_fields(session_id: str, payload: FieldChangeRequest) -> SessionResponse:
    coordinator = _get_session(session_id)
    coordinator.confirm = lambda message: payload.confirm_destructive
    try:
        update = coordinator.apply_changes(**payload.changes)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc
    return _session_response(session_id, coordinator, update)


@app.post("/sessions/{session_id}/pins/{field}", response_model=SessionResponse)
def toggle_pin(session_id: str, field: DependentField, payload: PinRequest) -> SessionResponse:
    coordinator = _get_session(session_id)
    coordinator.confirm = lambda message: payload.confirm_destructive
    if payload.pinned is None:
        update = coordinator.toggle_pin(field)
    else:
        update = coordinator.set_pinned(field, payload.pinned)
    return _session_response(session_id, coordinator, update)


@app.post("/sessions/{session_id}/edit", response_model=SessionResponse)
def enter_edit(session_id: str) -> SessionResponse:
    coordinator = _get_session(session_id)
    return _session_response(session_id, coordinator, coordinator.enter_edit())


@app.post("/sessions/{session_id}/edit/cancel", response_model=SessionResponse)
def cancel_edit(session_id: str) -> SessionResponse:
    coordinator = _get_session(session_id)
    return _session_response(session_id, coordinator, coordinator.cancel_edit())


@app.post("/sessions/{session_id}/edit/save", response_model=SessionResponse)
def save_edit(session_id: str) -> SessionResponse:
    coordinator = _get_session(session_id)
    return _session_response(session_id, coordinator, coordinator.save_edit())


@app.post("/sessions/{session_id}/ceiling", response_model=SessionResponse)
def ceiling_rounding(session_id: str) -> SessionResponse:
    coordinator = _get_session(session_id)
    return _session_response(session_id, coordinator, coordinator.apply_ceiling_rounding())


@app.put("/sessions/{session_id}/rows/{index}", response_model=SessionResponse)
def update_row(session_id: str, index: int, payload: RowUpdateRequest) -> SessionResponse:
    coordinator = _get_session(session_id)
    return _session_response(session_id, coordinator, coordinator.update_row(index, payload.depreciation))


@app.post("/sessions/{session_id}/rows", response_model=SessionResponse)
def add_row(session_id: str) -> SessionResponse:
    coordinator = _get_session(session_id)
    return _session_response(session_id, coordinator, coordinator.add_row())


@app.delete("/sessions/{session_id}/rows", response_model=SessionResponse)
def remove_row(session_id: str) -> SessionResponse:
    coordinator = _get_session(session_id)
    return _session_response(session_id, coordinator, coordinator.remove_row())


@app.delete("/sessions/{session_id}")
def close_session(session_id: str) -> Dict[str, str]:
    _get_session(session_id)
    del SESSIONS[session_id]
    logger.info("Closed depreciation session %s", session_id)
    return {"status": "closed"}


@app.get("/sample", response_model=AssetFields)
def sample_asset() -> AssetFields:
    return build_sample_fields()


@app.get("/health")
def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}
