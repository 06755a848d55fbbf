from __future__ import annotations

from datetime import date

import pytest

from depreciation_app.models.common import AssetFields, DependentField, DepreciationFrequency, DepreciationMethod, EditableFlags
from depreciation_app.sample_data import build_sample_fields, build_sample_flags
from depreciation_app.services.coordinator import (
    FREQUENCY_CHANGE_WARNING,
    METHOD_CHANGE_WARNING,
    ScheduleCoordinator,
)


def _fields(**overrides) -> AssetFields:
    return AssetFields.model_validate({**build_sample_fields().model_dump(), **overrides})


def _coordinator(flags=None, answer=True, prompts=None, **overrides) -> ScheduleCoordinator:
    def confirm(message: str) -> bool:
        if prompts is not None:
            prompts.append(message)
        return answer

    coordinator = ScheduleCoordinator(
        fields=_fields(**overrides),
        flags=build_sample_flags() if flags is None else flags,
        confirm=confirm,
    )
    coordinator.refresh()
    return coordinator


def test_refresh_derives_summary_fields_and_schedule():
    coordinator = ScheduleCoordinator(fields=build_sample_fields(), flags=build_sample_flags())

    update = coordinator.refresh()

    assert update.value_for("total_depreciation") == "12000.00"
    assert update.value_for("depreciation_rate") == "20"
    assert update.value_for("residual_value") is None
    assert update.value_for("useful_life") is None
    assert len(update.state.rows) == 6
    assert update.state.rows[0].label == "2024 (6 mths)"
    assert update.state.rows[-1].net_book_value == 0
    assert update.state.total_depreciation == 12000
    assert not update.state.is_manual
    assert not update.state.ceiling_applied


@pytest.mark.parametrize(
    "flags",
    [
        EditableFlags(),
        EditableFlags(residual_value=True),
        EditableFlags(total_depreciation=True),
        EditableFlags(depreciation_rate=True),
        EditableFlags(useful_life=True, residual_value=True),
        EditableFlags(useful_life=True, depreciation_rate=True),
    ],
)
def test_second_pass_makes_no_write_backs(flags):
    coordinator = _coordinator(flags=flags, total_depreciation="4000.00", depreciation_rate="10")

    assert coordinator.apply_changes().write_backs == []
    assert coordinator.refresh().write_backs == []


def test_cost_change_regenerates_schedule():
    coordinator = _coordinator()

    update = coordinator.apply_changes(cost="24000.00")

    assert [write_back.field for write_back in update.write_backs] == ["total_depreciation"]
    assert update.value_for("total_depreciation") == "24000.00"
    assert update.state.rows[0].depreciation == 2400
    assert coordinator.fields.total_depreciation == "24000.00"


def test_zero_cost_clears_summary_fields():
    coordinator = ScheduleCoordinator(fields=AssetFields(useful_life=5), flags=EditableFlags())

    update = coordinator.refresh()

    assert update.value_for("residual_value") == "0.00"
    assert update.value_for("total_depreciation") == "0.00"
    assert update.value_for("depreciation_rate") == "0"
    assert update.value_for("useful_life") is None
    assert update.state.rows == []


def test_ceiling_flag_survives_identical_regeneration_only():
    coordinator = _coordinator()
    coordinator.enter_edit()
    assert coordinator.apply_ceiling_rounding().state.ceiling_applied

    same = coordinator.apply_changes(acquire_date="2024-07-01")
    assert same.state.ceiling_applied

    changed = coordinator.apply_changes(cost="6000.00")
    assert not changed.state.ceiling_applied


def test_save_edit_commits_manual_schedule():
    coordinator = _coordinator()
    coordinator.enter_edit()
    coordinator.update_row(0, "1000.00")

    update = coordinator.save_edit()

    assert update.value_for("method") == "Manual"
    assert update.value_for("total_depreciation") == "11800.00"
    assert update.value_for("depreciation_rate") == "N/A"
    assert update.value_for("residual_value") == "200.00"
    assert update.state.is_manual
    assert not update.state.is_editing
    assert not update.state.ceiling_applied
    assert update.state.rows[0].depreciation == 1000
    assert update.state.rows[-1].net_book_value == 200
    assert coordinator.fields.method is DepreciationMethod.MANUAL
    assert coordinator.flags == EditableFlags()


def test_save_edit_clears_pins_and_reports_last_net_book_value():
    coordinator = _coordinator(residual_value="1000.00")
    coordinator.enter_edit()
    coordinator.update_row(0, 500)

    update = coordinator.save_edit()

    assert coordinator.flags == EditableFlags()
    assert update.state.rows[-1].net_book_value == 1600
    assert coordinator.fields.residual_value == "1600.00"
    assert coordinator.fields.total_depreciation == "10400.00"
    assert coordinator.fields.residual_value == update.value_for("residual_value")


def test_manual_schedule_is_frozen_against_input_changes():
    coordinator = _coordinator()
    coordinator.enter_edit()
    coordinator.update_row(0, "1000.00")
    rows = coordinator.save_edit().state.rows

    assert coordinator.apply_changes().write_backs == []
    update = coordinator.apply_changes(cost="24000.00")

    assert update.state.rows == rows
    assert update.value_for("total_depreciation") == "23800.00"


def test_save_with_empty_draft_only_leaves_edit_mode():
    coordinator = _coordinator(cost="")
    coordinator.enter_edit()

    update = coordinator.save_edit()

    assert not update.state.is_editing
    assert not update.state.is_manual
    assert update.write_backs == []


def test_cancel_edit_discards_draft():
    coordinator = _coordinator()
    before = coordinator.state.rows
    coordinator.enter_edit()
    coordinator.update_row(0, 0)
    coordinator.apply_ceiling_rounding()

    update = coordinator.cancel_edit()

    assert not update.state.is_editing
    assert update.state.editable_rows == []
    assert update.state.rows == before
    assert not update.state.ceiling_applied


def test_row_edits_outside_edit_mode_are_ignored():
    coordinator = _coordinator()
    before = coordinator.state

    assert coordinator.update_row(0, 5000).state == before
    assert coordinator.add_row().state == before
    assert coordinator.remove_row().state == before


def test_add_and_remove_rows_in_edit_mode():
    coordinator = _coordinator()
    coordinator.enter_edit()

    added = coordinator.add_row()
    assert len(added.state.editable_rows) == 7
    assert added.state.editable_rows[-1].label == "2030"
    assert added.state.editable_rows[-1].depreciation == 0
    assert added.state.visible_rows == added.state.editable_rows
    assert len(added.state.rows) == 6

    coordinator.remove_row()
    removed = coordinator.remove_row()
    assert len(removed.state.editable_rows) == 5


def test_add_row_to_empty_draft():
    coordinator = _coordinator(cost="")
    coordinator.enter_edit()

    update = coordinator.add_row()

    assert [row.label for row in update.state.editable_rows] == [str(date.today().year)]


def test_invalid_row_index_is_ignored():
    coordinator = _coordinator()
    draft = coordinator.enter_edit().state.editable_rows

    assert coordinator.update_row(42, 100).state.editable_rows == draft


def test_ceiling_rounding_outside_edit_mode_commits_manual():
    coordinator = _coordinator(cost="1250.00", useful_life=3, acquire_date=date(2024, 1, 1))
    assert [row.depreciation for row in coordinator.state.rows] == [416.67, 416.67, 416.66]

    update = coordinator.apply_ceiling_rounding()

    assert [row.depreciation for row in update.state.rows] == [417, 417, 416]
    assert update.state.is_manual
    assert update.state.ceiling_applied
    assert update.value_for("method") == "Manual"
    assert update.value_for("depreciation_rate") == "N/A"
    assert update.value_for("total_depreciation") is None
    assert coordinator.flags == EditableFlags()


def test_ceiling_rounding_without_rows_is_a_no_op():
    coordinator = _coordinator(cost="")

    update = coordinator.apply_ceiling_rounding()

    assert not update.state.is_manual
    assert not update.state.ceiling_applied
    assert update.write_backs == []


def test_switch_to_manual_seeds_from_straight_line_rows():
    coordinator = _coordinator()
    generated = coordinator.state.rows

    update = coordinator.apply_changes(method="Manual")

    assert update.state.is_manual
    assert update.state.rows == generated
    assert coordinator.flags == EditableFlags()
    assert update.value_for("depreciation_rate") == "N/A"


def test_manual_mount_seeds_schedule():
    coordinator = ScheduleCoordinator(fields=_fields(method="Manual"), flags=build_sample_flags())

    update = coordinator.refresh()

    assert len(update.state.rows) == 6
    assert update.value_for("depreciation_rate") == "N/A"
    assert coordinator.flags == EditableFlags()


def test_switch_back_to_straight_line_discards_manual_schedule():
    coordinator = _coordinator()
    coordinator.apply_changes(method="Manual")

    update = coordinator.apply_changes(method="Straight Line")

    assert not update.state.is_manual
    assert coordinator.session.manual_rows == []
    assert len(update.state.rows) == 6
    assert update.value_for("depreciation_rate") == "20"


def test_declined_frequency_change_keeps_manual_schedule():
    prompts = []
    coordinator = _coordinator(answer=False, prompts=prompts)
    coordinator.apply_changes(method="Manual")
    before = coordinator.state

    update = coordinator.apply_changes(frequency="Monthly")

    assert prompts == [FREQUENCY_CHANGE_WARNING]
    assert update.reverted
    assert update.value_for("frequency") == "Yearly"
    assert coordinator.fields.frequency is DepreciationFrequency.YEARLY
    assert update.state == before


def test_confirmed_frequency_change_rebuilds_manual_schedule():
    prompts = []
    coordinator = _coordinator(answer=True, prompts=prompts)
    coordinator.apply_changes(method="Manual")

    update = coordinator.apply_changes(frequency="Monthly")

    assert prompts == [FREQUENCY_CHANGE_WARNING]
    assert not update.reverted
    assert update.state.is_manual
    assert update.state.is_monthly
    assert len(update.state.rows) == 5
    assert update.state.rows[0].label == "2024 Jul"


def test_monthly_switch_defaults_useful_life():
    coordinator = _coordinator(flags=EditableFlags(residual_value=True))

    update = coordinator.apply_changes(frequency="Monthly")

    assert update.value_for("useful_life") == 12
    assert update.value_for("depreciation_rate") == "8"
    assert coordinator.fields.useful_life == 12
    assert len(update.state.rows) == 12
    assert update.state.rows[0].label == "2024 Jul"
    assert not coordinator.session.skip_next_useful_life


def test_monthly_switch_keeps_pinned_useful_life():
    prompts = []
    coordinator = _coordinator(prompts=prompts)

    update = coordinator.apply_changes(frequency="Monthly")

    assert prompts == []
    assert update.value_for("useful_life") is None
    assert len(update.state.rows) == 5


def test_pinning_in_manual_mode_needs_confirmation():
    prompts = []
    coordinator = _coordinator(answer=False, prompts=prompts)
    coordinator.apply_changes(method="Manual")

    declined = coordinator.toggle_pin("residual_value")

    assert prompts == [METHOD_CHANGE_WARNING]
    assert declined.state.is_manual
    assert not coordinator.flags.residual_value

    coordinator.confirm = lambda message: True
    accepted = coordinator.toggle_pin(DependentField.RESIDUAL_VALUE)

    assert accepted.value_for("method") == "Straight Line"
    assert not accepted.state.is_manual
    assert coordinator.flags.residual_value
    assert coordinator.session.manual_rows == []
    assert len(accepted.state.rows) == 6


def test_unpinning_in_straight_line_needs_no_confirmation():
    prompts = []
    coordinator = _coordinator(prompts=prompts)

    update = coordinator.set_pinned("useful_life", False)

    assert prompts == []
    assert not coordinator.flags.useful_life
    assert update.write_backs == []


def test_frequency_change_in_manual_mode_defers_useful_life():
    coordinator = _coordinator()
    coordinator.apply_changes(method="Manual")

    coordinator.apply_changes(frequency="Monthly")
    assert coordinator.session.skip_next_useful_life

    update = coordinator.apply_changes(method="Straight Line")
    assert not coordinator.session.skip_next_useful_life
    assert update.value_for("useful_life") is None
    assert len(update.state.rows) == 5


def test_monthly_schedule_past_year_9999():
    coordinator = _coordinator(frequency="Monthly", useful_life=12, acquire_date=date(9999, 6, 1))

    rows = coordinator.state.rows

    assert len(rows) == 12
    assert rows[0].label == "9999 Jun"
    assert rows[-1].label == "10000 May"
