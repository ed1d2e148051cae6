class QueryUsageError(ValueError):
    """Raised when a QueryNode is used in a way that cannot produce a valid document."""


class NotScrollableError(RuntimeError):
    """Raised when a continuation page is requested from a ResultCursor without a scroll."""
