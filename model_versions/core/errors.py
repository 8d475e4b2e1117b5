"""Errors raised by the versioning layer."""


class VersioningError(Exception):
    """Base class for versioning failures."""


class ConfigurationError(VersioningError):
    """Raised at registration time when a tracked model cannot be versioned."""


class PersistenceError(VersioningError):
    """Raised when history rows could not be written."""
