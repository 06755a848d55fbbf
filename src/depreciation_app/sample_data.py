from __future__ import annotations

from datetime import date

from .models.common import AssetFields, DepreciationFrequency, DepreciationMethod, EditableFlags


def build_sample_fields(frequency: DepreciationFrequency = DepreciationFrequency.YEARLY) -> AssetFields:
    useful_life = 60 if frequency is DepreciationFrequency.MONTHLY else 5
    return AssetFields(
        cost="12000.00",
        residual_value="0.00",
        depreciation_rate="",
        total_depreciation="",
        useful_life=useful_life,
        acquire_date=date(2024, 7, 1),
        method=DepreciationMethod.STRAIGHT_LINE,
        frequency=frequency,
    )


def build_sample_flags() -> EditableFlags:
    return EditableFlags(useful_life=True, residual_value=True)
