"""Custom exceptions for the field classifier."""

class FieldClassifierError(Exception):
    """Base exception for field classification failures."""
    pass


class CatalogError(FieldClassifierError):
    """Custom exception for a malformed field catalog."""
    pass


class PageContextError(FieldClassifierError):
    """Custom exception for when page context cannot be built."""
    pass


class SignalSourceError(FieldClassifierError):
    """Custom exception raised inside a signal source while gathering evidence."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")
