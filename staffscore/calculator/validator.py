# ==============================================================================
# staffscore/calculator/validator.py
# ------------------------------------------------------------------------------
# Start-up and import-time validation: record frames, tier schedules and the
# level ladder. Every function returns a list of human-readable errors.
# ==============================================================================

import pandas as pd
from .schema import EXPECTED_FRAMES


def validate_frames(frames):
    """
    Validates the structure and basic data types of raw record frames.

    Args:
        frames (dict): Frame name ('sales' / 'returns') -> pandas DataFrame.
            A missing or None 'returns' frame is allowed.

    Returns:
        list: Human-readable error messages, empty when the frames are usable.
    """
    errors = []

    if frames.get('sales') is None:
        errors.append("Required frame 'sales' is missing.")
        return errors

    for frame_name, rules in EXPECTED_FRAMES.items():
        df = frames.get(frame_name)
        if df is None:
            continue

        # 1. Check for required columns
        missing_columns = [col for col in rules['required_columns'] if col not in df.columns]
        if missing_columns:
            errors.append(f"Frame '{frame_name}' is missing required columns: {', '.join(missing_columns)}")
            continue  # Move to the next frame

        # 2. Check numeric columns for non-numeric values
        for col in rules['numeric_columns']:
            numeric_series = pd.to_numeric(df[col].astype(str).str.replace(',', ''), errors='coerce')
            invalid_rows = df[numeric_series.isna() & df[col].notna()]
            for index in invalid_rows.index:
                errors.append(
                    f"Frame '{frame_name}', row {index + 2}: "
                    f"value '{invalid_rows.loc[index, col]}' in column '{col}' must be a number."
                )
            negative_rows = df[numeric_series < 0]
            for index in negative_rows.index:
                errors.append(
                    f"Frame '{frame_name}', row {index + 2}: column '{col}' must not be negative."
                )

        # 3. Check date columns
        for col in rules['date_columns']:
            parsed = pd.to_datetime(df[col], errors='coerce')
            invalid_rows = df[parsed.isna()]
            for index in invalid_rows.index:
                errors.append(
                    f"Frame '{frame_name}', row {index + 2}: "
                    f"value '{invalid_rows.loc[index, col]}' in column '{col}' is not a date."
                )

        # 4. Every record must be attributed to someone
        blank_ids = df[df['employee_id'].isna() | (df['employee_id'].astype(str).str.strip() == '')]
        for index in blank_ids.index:
            errors.append(f"Frame '{frame_name}', row {index + 2}: 'employee_id' is empty.")

    return errors


def validate_tier_schedule(bands):
    """Checks a schedule is non-empty, starts at 0 and is contiguous."""
    errors = []
    if not bands:
        return ["Tier schedule has no bands."]

    if bands[0].min_sales != 0:
        errors.append(f"First band must start at 0, starts at {bands[0].min_sales:,.0f}.")

    for index, band in enumerate(bands):
        if band.max_sales <= band.min_sales:
            errors.append(
                f"Band {index} ('{band.label}') has max {band.max_sales:,.0f} <= min {band.min_sales:,.0f}."
            )
        if band.percentage < 0:
            errors.append(f"Band {index} ('{band.label}') has a negative percentage.")
        if index > 0 and bands[index - 1].max_sales != band.min_sales:
            errors.append(
                f"Band {index} ('{band.label}') starts at {band.min_sales:,.0f} but the previous band "
                f"ends at {bands[index - 1].max_sales:,.0f}."
            )
    return errors


def validate_level_ladder(levels):
    """Checks a ladder is non-empty, starts at 0 and strictly increases."""
    errors = []
    if not levels:
        return ["Level ladder has no levels."]

    if levels[0].min_power != 0:
        errors.append(f"Lowest level '{levels[0].name}' must have threshold 0.")

    for previous, current in zip(levels, levels[1:]):
        if current.min_power <= previous.min_power:
            errors.append(
                f"Level '{current.name}' threshold {current.min_power} is not above "
                f"'{previous.name}' ({previous.min_power})."
            )
    return errors
