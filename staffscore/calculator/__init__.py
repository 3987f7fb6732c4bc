# ==============================================================================
# staffscore/calculator/__init__.py
# ------------------------------------------------------------------------------
# The compensation & scoring engine. Apart from EngineConfig loading business
# settings, nothing here touches the database, the clock or the network.
# ==============================================================================


class ConfigurationError(ValueError):
    """Raised at start-up when a tier schedule, level ladder or achievement
    catalog is malformed. Never raised for well-formed per-call input."""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])


class InvalidRecordsError(ValueError):
    """Raised when raw sale/return frames do not have the expected shape."""

    def __init__(self, errors):
        super().__init__("; ".join(errors))
        self.errors = list(errors)
