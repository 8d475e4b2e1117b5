"""History naming tests."""

import pytest

from model_versions.core.errors import ConfigurationError
from model_versions.services.naming import resolve_names


def test_underscored_names_for_default_prefix() -> None:
    """Default options should produce snake_case table and column names."""
    names = resolve_names("User", "users", prefix="version")

    assert names.table == "version_users"
    assert names.model == "VersionUser"
    assert names.id == "version_id"
    assert names.type == "version_type"
    assert names.timestamp == "version_timestamp"
    assert names.user == "version_user_id"
    assert names.user_relation == "version_user"


def test_camel_case_names_when_not_underscored() -> None:
    """Without underscores words are concatenated with a capitalized head."""
    names = resolve_names("User", "users", prefix="version", table_underscored=False, underscored=False)

    assert names.table == "versionUsers"
    assert names.id == "versionId"
    assert names.type == "versionType"
    assert names.timestamp == "versionTimestamp"
    assert names.user == "versionUserId"


def test_table_and_field_casing_are_independent() -> None:
    names = resolve_names("User", "users", prefix="version", table_underscored=True, underscored=False)

    assert names.table == "version_users"
    assert names.type == "versionType"


def test_suffix_only_naming() -> None:
    """A suffix alone is enough and also seeds the attribute prefix."""
    names = resolve_names("User", "users", prefix="", suffix="history")

    assert names.table == "users_history"
    assert names.model == "UserHistory"
    assert names.id == "history_id"


def test_attribute_prefix_overrides_field_names_only() -> None:
    names = resolve_names("User", "users", prefix="version", attribute_prefix="rev")

    assert names.table == "version_users"
    assert names.type == "rev_type"
    assert names.user == "rev_user_id"


def test_missing_prefix_and_suffix_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        resolve_names("User", "users", prefix="", suffix="")


def test_naming_is_deterministic() -> None:
    """Identical inputs always give identical names."""
    first = resolve_names("Document", "documents", prefix="audit", suffix="log", underscored=False)
    second = resolve_names("Document", "documents", prefix="audit", suffix="log", underscored=False)

    assert first == second
    assert first.provenance == ("auditId", "auditType", "auditTimestamp", "auditUserId")
