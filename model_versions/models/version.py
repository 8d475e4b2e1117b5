"""Event kinds recorded in history rows and the lifecycle hooks that produce them."""

from __future__ import annotations

import enum

from model_versions.core.errors import ConfigurationError


class VersionType(enum.IntEnum):
    """Code stored in the version type column of every history row."""

    CREATED = 1
    UPDATED = 2
    DELETED = 3
    READ = 4


class Hook(str, enum.Enum):
    """Lifecycle points a tracked model exposes."""

    BEFORE_CREATE = "before_create"
    AFTER_CREATE = "after_create"
    BEFORE_UPDATE = "before_update"
    AFTER_UPDATE = "after_update"
    BEFORE_DESTROY = "before_destroy"
    AFTER_DESTROY = "after_destroy"
    BEFORE_SAVE = "before_save"
    AFTER_SAVE = "after_save"
    BEFORE_BULK_CREATE = "before_bulk_create"
    AFTER_BULK_CREATE = "after_bulk_create"
    BEFORE_BULK_UPDATE = "before_bulk_update"
    AFTER_BULK_UPDATE = "after_bulk_update"
    BEFORE_FIND = "before_find"
    AFTER_FIND = "after_find"


DEFAULT_HOOKS: tuple[Hook, ...] = (
    Hook.AFTER_CREATE,
    Hook.AFTER_UPDATE,
    Hook.AFTER_BULK_CREATE,
    Hook.AFTER_BULK_UPDATE,
    Hook.AFTER_DESTROY,
)

BULK_HOOKS: tuple[Hook, ...] = (
    Hook.BEFORE_BULK_CREATE,
    Hook.BEFORE_BULK_UPDATE,
    Hook.AFTER_BULK_CREATE,
    Hook.AFTER_BULK_UPDATE,
)

# Per-instance hook -> the bulk hook that fires once for the same statement.
BULK_COUNTERPARTS: dict[Hook, Hook] = {
    Hook.BEFORE_CREATE: Hook.BEFORE_BULK_CREATE,
    Hook.AFTER_CREATE: Hook.AFTER_BULK_CREATE,
    Hook.BEFORE_UPDATE: Hook.BEFORE_BULK_UPDATE,
    Hook.AFTER_UPDATE: Hook.AFTER_BULK_UPDATE,
}

HOOK_VERSION_TYPES: dict[Hook, VersionType] = {
    Hook.BEFORE_CREATE: VersionType.CREATED,
    Hook.BEFORE_BULK_CREATE: VersionType.CREATED,
    Hook.AFTER_CREATE: VersionType.CREATED,
    Hook.AFTER_BULK_CREATE: VersionType.CREATED,
    Hook.BEFORE_UPDATE: VersionType.UPDATED,
    Hook.BEFORE_BULK_UPDATE: VersionType.UPDATED,
    Hook.AFTER_UPDATE: VersionType.UPDATED,
    Hook.AFTER_BULK_UPDATE: VersionType.UPDATED,
    Hook.BEFORE_DESTROY: VersionType.DELETED,
    Hook.AFTER_DESTROY: VersionType.DELETED,
    Hook.BEFORE_FIND: VersionType.READ,
    Hook.AFTER_FIND: VersionType.READ,
}


def version_type_for_hook(hook: Hook | str) -> VersionType:
    """Return the event kind recorded for ``hook``."""
    try:
        return HOOK_VERSION_TYPES[Hook(hook)]
    except (KeyError, ValueError):
        raise ConfigurationError(f"Version type not found for hook {hook!r}") from None
