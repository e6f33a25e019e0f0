"""Exception types shared across the analytics engine."""


class ConfigurationError(ValueError):
    """Raised when analysis parameters are invalid or numerically degenerate.

    Subclasses :class:`ValueError` so callers that already guard parameter
    parsing with ``except ValueError`` keep working.
    """
