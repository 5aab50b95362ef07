"""Exceptions raised by the PrepPro domain modules."""


class PrepProError(Exception):
    """Base class for application errors shown to the user."""


class ValidationError(PrepProError, ValueError):
    """Admin form or upload input failed validation."""


class AccessDenied(PrepProError):
    """The current user may not open the requested test or result."""


class SessionStateError(PrepProError):
    """A test session transition was attempted from the wrong state."""


class ConfigurationError(PrepProError):
    """A required setting (API key, credentials) is missing."""
