"""Custom exceptions for Daygrid."""


class DaygridError(Exception):
    """Base exception for all Daygrid errors."""

    pass


class ValidationError(DaygridError):
    """Raised when task or resource input is malformed."""

    pass


class RangeError(DaygridError):
    """Raised when a date or resource index falls outside the loaded grid."""

    pass


class StateError(DaygridError):
    """Raised when an operation is not allowed in the current state."""

    pass


class ParseError(DaygridError):
    """Raised when a dataset file cannot be parsed."""

    pass
