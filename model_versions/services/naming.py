"""Names of the history table, class and provenance columns."""

from __future__ import annotations

from dataclasses import dataclass

from model_versions.core.errors import ConfigurationError


@dataclass(frozen=True)
class HistoryNames:
    """Everything the history store needs to be named."""

    table: str
    model: str
    id: str
    type: str
    timestamp: str
    user: str
    user_relation: str

    @property
    def provenance(self) -> tuple[str, str, str, str]:
        return (self.id, self.type, self.timestamp, self.user)


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


def _join(words: list[str], underscored: bool) -> str:
    words = [word for word in words if word]
    if underscored:
        return "_".join(words)
    return words[0] + "".join(_capitalize(word) for word in words[1:])


def resolve_names(
    model_name: str,
    table_name: str,
    *,
    prefix: str = "version",
    suffix: str = "",
    attribute_prefix: str = "",
    table_underscored: bool = True,
    underscored: bool = True,
) -> HistoryNames:
    """Derive history names for a tracked model.

    ``users`` tracked with prefix ``version`` becomes ``version_users`` with
    columns ``version_id``, ``version_type``, ``version_timestamp`` and
    ``version_user_id``; without underscores the same inputs give
    ``versionUsers`` and ``versionId`` and so on.
    """
    if not prefix and not suffix:
        raise ConfigurationError("Prefix or suffix must be informed in options.")

    field_prefix = attribute_prefix or prefix or suffix
    return HistoryNames(
        table=_join([prefix, table_name, suffix], table_underscored),
        model=_capitalize(prefix) + _capitalize(model_name) + _capitalize(suffix),
        id=_join([field_prefix, "id"], underscored),
        type=_join([field_prefix, "type"], underscored),
        timestamp=_join([field_prefix, "timestamp"], underscored),
        user=_join([field_prefix, "user", "id"], underscored),
        user_relation=_join([field_prefix, "user"], underscored),
    )
