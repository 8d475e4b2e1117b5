"""Option merging and validation for ``track()``."""

import pydantic
import pytest

from model_versions import (
    DEFAULT_HOOKS,
    ConfigurationError,
    Hook,
    VersionOptions,
    configure_defaults,
    settings,
    track,
)
from model_versions.schemas.options import build_options


def test_defaults(actor) -> None:
    options = build_options(user_model=object, get_user_fn=actor)

    assert options.prefix == "version"
    assert options.suffix == ""
    assert options.resolved_attribute_prefix == "version"
    assert options.hooks == DEFAULT_HOOKS
    assert options.exclude == frozenset()
    assert options.shares_storage is True
    assert options.audit_condition_fn is None


def test_explicit_options_then_overrides(actor) -> None:
    base = VersionOptions(user_model=object, get_user_fn=actor, prefix="audit", schema="history")

    options = build_options(base, suffix="log")

    assert options.prefix == "audit"
    assert options.suffix == "log"
    assert options.schema_name == "history"


def test_process_defaults_feed_new_registrations(models, actor) -> None:
    configure_defaults(prefix="audit")

    history = track(models.User, user_model=models.User, get_user_fn=actor)

    assert history.table.name == "audit_users"
    assert "audit_id" in history.table.c


def test_configure_defaults_rejects_unknown_names() -> None:
    with pytest.raises(ValueError):
        configure_defaults(prefixx="audit")
    assert settings.prefix == "version"


def test_hook_names_are_coerced(actor) -> None:
    options = build_options(user_model=object, get_user_fn=actor, hooks=["after_create", "after_create", "after_find"])

    assert options.hooks == (Hook.AFTER_CREATE, Hook.AFTER_FIND)


@pytest.mark.parametrize(
    "overrides",
    [
        {"get_user_fn": lambda: None},
        {"user_model": object},
        {"user_model": object, "get_user_fn": lambda: None, "colour": "blue"},
        {"user_model": object, "get_user_fn": lambda: None, "hooks": ["after_save"]},
        {"user_model": object, "get_user_fn": lambda: None, "hooks": ["after_lunch"]},
        {"user_model": object, "get_user_fn": lambda: None, "prefix": "", "suffix": ""},
    ],
)
def test_invalid_options_raise_configuration_error(overrides) -> None:
    with pytest.raises(ConfigurationError):
        build_options(**overrides)


def test_options_are_frozen(actor) -> None:
    options = build_options(user_model=object, get_user_fn=actor)

    with pytest.raises(pydantic.ValidationError):
        options.prefix = "audit"


def test_track_rejects_unmapped_model(actor) -> None:
    class Plain:
        pass

    with pytest.raises(ConfigurationError):
        track(Plain, user_model=Plain, get_user_fn=actor)
