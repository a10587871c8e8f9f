"""Custom exceptions for the correlation panel module."""


class CorrPanelError(Exception):
    """Base exception for corrpanel errors."""
    pass


class ConfigurationError(CorrPanelError, ValueError):
    """Raised when a computation is configured with invalid parameters."""
    pass


class DataError(CorrPanelError):
    """Raised when input data is missing, malformed, or inconsistent."""
    pass
