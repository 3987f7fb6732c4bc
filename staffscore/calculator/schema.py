# ==============================================================================
# staffscore/calculator/schema.py
# ------------------------------------------------------------------------------
# Defines the expected structure of the raw sale / return record frames.
# This schema is the single source of truth for the validator.
# ==============================================================================

EXPECTED_FRAMES = {
    'sales': {
        'required_columns': ['employee_id', 'amount', 'sale_date'],
        'numeric_columns': ['amount'],
        'date_columns': ['sale_date'],
    },
    'returns': {
        'required_columns': ['employee_id', 'amount', 'return_date'],
        'numeric_columns': ['amount'],
        'date_columns': ['return_date'],
    },
}
