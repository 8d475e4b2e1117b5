"""Per-registration options for a tracked model."""

from __future__ import annotations

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, InstanceOf, ValidationError, field_validator, model_validator

from model_versions.core import config
from model_versions.core.errors import ConfigurationError
from model_versions.models.field_spec import FieldSpec
from model_versions.models.version import DEFAULT_HOOKS, Hook, version_type_for_hook


class VersionOptions(BaseModel):
    """Immutable configuration of one ``track()`` registration."""

    prefix: str = "version"
    suffix: str = ""
    attribute_prefix: str = ""
    schema_name: str = Field("", alias="schema")
    namespace: Any = None
    bind: Any = None
    registry: Any = None
    exclude: frozenset[str] = frozenset()
    table_underscored: bool = True
    underscored: bool = True
    hooks: tuple[Hook, ...] = DEFAULT_HOOKS
    user_model: type
    get_user_fn: Callable[[], Any]
    audit_condition_fn: Callable[..., Any] | None = None
    fields: tuple[InstanceOf[FieldSpec], ...] | None = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, populate_by_name=True, extra="forbid")

    @field_validator("hooks")
    @classmethod
    def _hooks_have_version_types(cls, hooks: tuple[Hook, ...]) -> tuple[Hook, ...]:
        for hook in hooks:
            version_type_for_hook(hook)
        return tuple(dict.fromkeys(hooks))

    @model_validator(mode="after")
    def _require_affix(self) -> "VersionOptions":
        if not self.prefix and not self.suffix:
            raise ValueError("Prefix or suffix must be informed in options.")
        return self

    @property
    def resolved_attribute_prefix(self) -> str:
        return self.attribute_prefix or self.prefix or self.suffix

    @property
    def shares_storage(self) -> bool:
        """Whether history is written through the tracked model's own session."""
        return self.bind is None


def build_options(options: VersionOptions | None = None, **overrides: Any) -> VersionOptions:
    """Merge process defaults, an explicit options record and keyword overrides."""
    values: dict[str, Any] = config.settings.model_dump()
    if options is not None:
        values.update({name: getattr(options, name) for name in options.model_fields_set})
    if "schema" in overrides:
        overrides["schema_name"] = overrides.pop("schema")
    values.update(overrides)
    try:
        return VersionOptions.model_validate(values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid versioning options: {exc}") from exc
