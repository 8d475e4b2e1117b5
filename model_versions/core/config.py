"""Process-wide defaults for version tracking."""

from os import getenv
from typing import Any

from pydantic import BaseModel


def _env_flag(name: str, default: str) -> bool:
    return getenv(name, default).lower() in {"1", "true", "yes"}


class Settings(BaseModel):
    """Defaults applied to every ``track()`` call unless overridden."""

    prefix: str = getenv("MODEL_VERSIONS_PREFIX", "version")
    suffix: str = getenv("MODEL_VERSIONS_SUFFIX", "")
    attribute_prefix: str = getenv("MODEL_VERSIONS_ATTRIBUTE_PREFIX", "")
    schema_name: str = getenv("MODEL_VERSIONS_SCHEMA", "")
    table_underscored: bool = _env_flag("MODEL_VERSIONS_TABLE_UNDERSCORED", "1")
    underscored: bool = _env_flag("MODEL_VERSIONS_UNDERSCORED", "1")


settings: Settings = Settings()


def configure_defaults(**overrides: Any) -> Settings:
    """Override process-wide defaults in place; unknown names raise ``ValueError``."""
    if "schema" in overrides:
        overrides["schema_name"] = overrides.pop("schema")
    unknown = set(overrides) - set(Settings.model_fields)
    if unknown:
        raise ValueError(f"Unknown default(s): {', '.join(sorted(unknown))}")
    updated = Settings.model_validate({**settings.model_dump(), **overrides})
    for name in overrides:
        setattr(settings, name, getattr(updated, name))
    return settings


def reset_defaults() -> Settings:
    """Restore the defaults read from the environment at import time."""
    fresh = Settings()
    for name in Settings.model_fields:
        setattr(settings, name, getattr(fresh, name))
    return settings
