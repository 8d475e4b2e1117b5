"""Automatic version history for SQLAlchemy mapped classes."""

from model_versions.core.config import configure_defaults, reset_defaults, settings
from model_versions.core.errors import ConfigurationError, PersistenceError, VersioningError
from model_versions.db.context import TransactionNamespace
from model_versions.db.lifecycle import HookContext, hooks_for
from model_versions.models import DEFAULT_HOOKS, FieldSpec, Hook, VersionType
from model_versions.schemas.options import VersionOptions
from model_versions.services.tracking import TrackedHistory, track

__all__ = [
    "track", "TrackedHistory", "VersionOptions", "VersionType", "Hook", "DEFAULT_HOOKS", "FieldSpec",
    "TransactionNamespace", "HookContext", "hooks_for",
    "ConfigurationError", "PersistenceError", "VersioningError",
    "configure_defaults", "reset_defaults", "settings",
]
