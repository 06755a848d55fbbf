"""Schedule state for one asset being edited.

The coordinator keeps its own copy of the host's fields. Every host change runs
the same pipeline: resolve dependent values, write the ones that changed back
into the copy, then regenerate the straight-line schedule from the updated
copy. Write-backs are only proposed when the formatted value differs from the
current one, which is what makes repeated passes settle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

from ..config import Settings, settings as default_settings
from ..models.common import AssetFields, DependentField, DepreciationMethod, EditableFlags
from ..models.results import EngineUpdate, FieldWriteBack
from ..models.schedule import ScheduleRow, ScheduleState
from .formatting import clamp_non_negative, format_currency, format_rate, parse_currency
from .resolver import DependentValueResolver
from .schedule_math import (
    add_manual_row,
    apply_ceiling_rounding,
    generate_schedule,
    remove_manual_row,
    schedules_equal,
    update_editable_row,
)

logger = logging.getLogger(__name__)

FREQUENCY_CHANGE_WARNING = "This will clear your custom schedule. Continue?"
METHOD_CHANGE_WARNING = (
    "This will change depreciation method. Changing the depreciation method "
    "will clear your custom schedule. Continue?"
)
NOT_APPLICABLE = "N/A"

ConfirmCallback = Callable[[str], bool]
WriteBacks = Dict[str, FieldWriteBack]


def decline(message: str) -> bool:
    return False


@dataclass
class ScheduleSession:
    generated_rows: List[ScheduleRow] = field(default_factory=list)
    manual_rows: List[ScheduleRow] = field(default_factory=list)
    editable_rows: List[ScheduleRow] = field(default_factory=list)
    is_editing: bool = False
    ceiling_applied: bool = False
    skip_next_useful_life: bool = False


class ScheduleCoordinator:
    def __init__(
        self,
        fields: Optional[AssetFields] = None,
        flags: Optional[EditableFlags] = None,
        confirm: Optional[ConfirmCallback] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or default_settings
        self.fields = fields or AssetFields()
        self.flags = flags or EditableFlags()
        if self.fields.is_manual:
            self.flags = EditableFlags()
        self.confirm = confirm or decline
        self.resolver = DependentValueResolver(self.settings.default_monthly_useful_life)
        self.session = ScheduleSession()

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    @property
    def effective_rows(self) -> List[ScheduleRow]:
        if self.fields.is_manual:
            return self.session.manual_rows
        return self.session.generated_rows

    @property
    def state(self) -> ScheduleState:
        return ScheduleState(
            rows=list(self.effective_rows),
            editable_rows=list(self.session.editable_rows),
            is_editing=self.session.is_editing,
            is_manual=self.fields.is_manual,
            is_monthly=self.fields.is_monthly,
            ceiling_applied=self.session.ceiling_applied,
        )

    def _update(self, write_backs: WriteBacks, reverted: bool = False) -> EngineUpdate:
        return EngineUpdate(state=self.state, write_backs=list(write_backs.values()), reverted=reverted)

    # ------------------------------------------------------------------
    # Host field changes
    # ------------------------------------------------------------------

    def refresh(self) -> EngineUpdate:
        write_backs: WriteBacks = {}
        self._settle(write_backs)
        return self._update(write_backs)

    def apply_changes(self, **changes) -> EngineUpdate:
        previous = self.fields
        proposed = AssetFields.model_validate({**previous.model_dump(), **changes})
        write_backs: WriteBacks = {}

        if proposed.frequency != previous.frequency:
            self.session.skip_next_useful_life = proposed.is_monthly
            if proposed.is_manual and self.session.manual_rows:
                if not self.confirm(FREQUENCY_CHANGE_WARNING):
                    logger.info("Frequency change to %s declined; keeping manual schedule", proposed.frequency.value)
                    write_backs["frequency"] = FieldWriteBack(field="frequency", value=previous.frequency.value)
                    return self._update(write_backs, reverted=True)
                self.fields = proposed
                self.session.manual_rows = self._straight_line_basis()
                logger.info(
                    "Manual schedule replaced by %d %s rows after frequency change",
                    len(self.session.manual_rows),
                    proposed.frequency.value.lower(),
                )
            else:
                self.fields = proposed
                self._default_monthly_useful_life(write_backs)
        else:
            self.fields = proposed

        if proposed.method != previous.method:
            self._on_method_change(proposed.method)

        self._settle(write_backs)
        return self._update(write_backs)

    def _default_monthly_useful_life(self, write_backs: WriteBacks) -> None:
        if self.fields.is_monthly and not self.flags.useful_life:
            self._write(write_backs, DependentField.USEFUL_LIFE.value, self.settings.default_monthly_useful_life)

    def _on_method_change(self, method: DepreciationMethod) -> None:
        if method is DepreciationMethod.MANUAL:
            self.flags = EditableFlags()
            self._seed_manual_schedule()
        elif not self.session.is_editing and self.session.manual_rows:
            logger.info("Discarding manual schedule of %d rows", len(self.session.manual_rows))
            self.session.manual_rows = []

    # ------------------------------------------------------------------
    # Pins
    # ------------------------------------------------------------------

    def toggle_pin(self, field_name: Union[DependentField, str]) -> EngineUpdate:
        dependent = DependentField(field_name)
        return self.set_pinned(dependent, not self.flags.is_pinned(dependent))

    def set_pinned(self, field_name: Union[DependentField, str], pinned: bool) -> EngineUpdate:
        dependent = DependentField(field_name)
        write_backs: WriteBacks = {}
        if self.flags.is_pinned(dependent) == pinned:
            return self._update(write_backs)

        if pinned and self.fields.is_manual:
            if not self.confirm(METHOD_CHANGE_WARNING):
                return self._update(write_backs)
            self._write(write_backs, "method", DepreciationMethod.STRAIGHT_LINE.value)
            self.session.manual_rows = []
            logger.info("Pinning %s switched the asset back to straight line", dependent.value)

        self.flags = self.flags.with_pin(dependent, pinned)
        self._settle(write_backs)
        return self._update(write_backs)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _settle(self, write_backs: WriteBacks) -> None:
        passes = self.settings.max_resolution_passes
        for _ in range(passes):
            if not self._run_pass(write_backs):
                return
        logger.warning("Dependent values did not settle after %d passes", passes)

    def _run_pass(self, write_backs: WriteBacks) -> bool:
        if self.fields.is_manual:
            if not self.session.manual_rows:
                self._seed_manual_schedule()
            return self._write_manual_summary(write_backs, self.session.manual_rows)
        written = self._resolve_dependents(write_backs)
        self._regenerate()
        return written

    def _resolve_dependents(self, write_backs: WriteBacks) -> bool:
        resolved = self.resolver.resolve(self.fields.to_inputs(), self.flags, self.fields.is_monthly)
        written = False
        if resolved.residual_value is not None and not self.flags.residual_value:
            written |= self._write(write_backs, "residual_value", format_currency(resolved.residual_value))
        if resolved.total_depreciation is not None and not self.flags.total_depreciation:
            written |= self._write(write_backs, "total_depreciation", format_currency(resolved.total_depreciation))
        if resolved.depreciation_rate is not None and not self.flags.depreciation_rate:
            written |= self._write(write_backs, "depreciation_rate", format_rate(resolved.depreciation_rate))

        skip_life = self.session.skip_next_useful_life
        self.session.skip_next_useful_life = False
        if resolved.useful_life is not None and not self.flags.useful_life:
            if skip_life and self.fields.is_monthly:
                logger.debug("Keeping default useful life after switch to monthly")
            else:
                written |= self._write(write_backs, "useful_life", max(1, int(resolved.useful_life)))
        return written

    def _regenerate(self) -> None:
        rows = self._straight_line_basis()
        if not schedules_equal(self.session.generated_rows, rows, self.settings.schedule_tolerance):
            logger.debug("Regenerated straight-line schedule with %d rows", len(rows))
            self.session.generated_rows = rows
            self.session.ceiling_applied = False
        if not self.session.is_editing and self.session.manual_rows:
            self.session.manual_rows = []

    def _straight_line_basis(self) -> List[ScheduleRow]:
        inputs = self.fields.to_inputs()
        return generate_schedule(
            self.fields.frequency,
            inputs.cost,
            inputs.residual_value,
            inputs.useful_life,
            self.fields.acquire_date,
        )

    def _seed_manual_schedule(self) -> None:
        if self.session.manual_rows:
            return
        base = self.session.generated_rows or self._straight_line_basis()
        self.session.manual_rows = list(base)
        logger.info("Seeded manual schedule with %d rows", len(base))

    def _write_manual_summary(self, write_backs: WriteBacks, rows: List[ScheduleRow]) -> bool:
        if not rows:
            return False
        last = rows[-1]
        cost = parse_currency(self.fields.cost)
        written = False
        if not self.flags.residual_value:
            written |= self._write(write_backs, "residual_value", format_currency(last.net_book_value))
        if not self.flags.total_depreciation:
            total = clamp_non_negative(cost - last.net_book_value)
            written |= self._write(write_backs, "total_depreciation", format_currency(total))
        if not self.flags.depreciation_rate:
            written |= self._write(write_backs, "depreciation_rate", NOT_APPLICABLE)
        return written

    def _write(self, write_backs: WriteBacks, field_name: str, value: Union[int, str]) -> bool:
        if getattr(self.fields, field_name) == value:
            return False
        self.fields = AssetFields.model_validate({**self.fields.model_dump(), field_name: value})
        write_backs[field_name] = FieldWriteBack(field=field_name, value=value)
        return True

    # ------------------------------------------------------------------
    # Edit session
    # ------------------------------------------------------------------

    def enter_edit(self) -> EngineUpdate:
        self.session.editable_rows = list(self.effective_rows)
        self.session.is_editing = True
        return self._update({})

    def cancel_edit(self) -> EngineUpdate:
        self.session.editable_rows = []
        self.session.is_editing = False
        self.session.ceiling_applied = False
        write_backs: WriteBacks = {}
        if not self.fields.is_manual and self.session.manual_rows:
            self.session.manual_rows = []
        self._settle(write_backs)
        return self._update(write_backs)

    def save_edit(self) -> EngineUpdate:
        write_backs: WriteBacks = {}
        draft = self.session.editable_rows
        self.session.is_editing = False
        if not draft:
            return self._update(write_backs)

        self.session.manual_rows = list(draft)
        self.session.editable_rows = []
        self.session.ceiling_applied = False
        self._commit_manual(write_backs)
        logger.info("Saved manual schedule with %d rows", len(draft))
        return self._update(write_backs)

    def apply_ceiling_rounding(self) -> EngineUpdate:
        write_backs: WriteBacks = {}
        if self.session.is_editing:
            self.session.editable_rows = apply_ceiling_rounding(self.session.editable_rows)
            self.session.ceiling_applied = True
            return self._update(write_backs)

        target = self.effective_rows
        if not target:
            return self._update(write_backs)
        self.session.manual_rows = apply_ceiling_rounding(target)
        self.session.ceiling_applied = True
        self._commit_manual(write_backs)
        logger.info("Applied ceiling rounding to %d rows", len(target))
        return self._update(write_backs)

    def _commit_manual(self, write_backs: WriteBacks) -> None:
        self._write(write_backs, "method", DepreciationMethod.MANUAL.value)
        self._on_method_change(DepreciationMethod.MANUAL)
        self._settle(write_backs)

    def update_row(self, index: int, depreciation: Union[float, str]) -> EngineUpdate:
        if self.session.is_editing:
            self.session.editable_rows = update_editable_row(
                self.session.editable_rows, index, parse_currency(depreciation)
            )
        return self._update({})

    def add_row(self) -> EngineUpdate:
        if self.session.is_editing:
            base = self.session.editable_rows or self.effective_rows
            self.session.editable_rows = add_manual_row(base, self.fields.is_monthly)
        return self._update({})

    def remove_row(self) -> EngineUpdate:
        if self.session.is_editing:
            base = self.session.editable_rows or self.effective_rows
            self.session.editable_rows = remove_manual_row(list(base))
        return self._update({})
