"""Define the history class and table for a tracked model."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import BigInteger, Column, DateTime, Integer, Select, Table, inspect, select
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import registry as Registry, relationship
from sqlalchemy.sql.elements import ColumnElement

from model_versions.core.errors import ConfigurationError
from model_versions.models.field_spec import FieldSpec
from model_versions.models.version import VersionType
from model_versions.services.naming import HistoryNames

logger = logging.getLogger(__name__)

SCOPES: dict[str, VersionType] = {
    "created": VersionType.CREATED,
    "updated": VersionType.UPDATED,
    "deleted": VersionType.DELETED,
}


@dataclass(frozen=True)
class HistoryStore:
    """The mapped history class of one tracked model and its table."""

    model: type
    table: Table
    names: HistoryNames
    fields: tuple[FieldSpec, ...]
    user_key: str

    def scope_criteria(self, name: str) -> ColumnElement[bool]:
        try:
            version_type = SCOPES[name]
        except KeyError:
            raise ConfigurationError(f"Unknown history scope {name!r}; expected one of {sorted(SCOPES)}") from None
        return self.table.c[self.names.type] == int(version_type)

    def scope(self, name: str) -> Select:
        """Return a select over the rows of one event kind."""
        return select(self.table).where(self.scope_criteria(name))


def _user_identity(user_model: type) -> Column:
    try:
        user_mapper = inspect(user_model)
    except NoInspectionAvailable:
        raise ConfigurationError(f"User model {user_model!r} is not a mapped class") from None
    if len(user_mapper.primary_key) != 1:
        raise ConfigurationError(f"User model {user_model.__name__} must have exactly one primary key column")
    return user_mapper.primary_key[0]


def define_history_store(
    model: type,
    fields: list[FieldSpec],
    names: HistoryNames,
    *,
    user_model: type,
    registry: Registry,
    schema: str | None = None,
) -> HistoryStore:
    """Create and map the history table for ``model`` on ``registry``."""
    metadata = registry.metadata
    table_key = f"{schema}.{names.table}" if schema else names.table
    if table_key in metadata.tables:
        raise ConfigurationError(f"History table {table_key!r} is already defined; {model.__name__} is tracked twice")

    provenance = set(names.provenance)
    clashes = sorted(field.key for field in fields if field.key in provenance or field.column_name in provenance)
    if clashes:
        raise ConfigurationError(f"Fields {clashes} of {model.__name__} collide with version columns; exclude or rename them")

    user_id = _user_identity(user_model)
    user_key = inspect(user_model).get_property_by_column(user_id).key

    table = Table(
        names.table,
        metadata,
        Column(names.id, BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
        *[Column(field.column_name, field.type, key=field.key, nullable=True) for field in fields],
        Column(names.type, Integer, nullable=False),
        Column(names.timestamp, DateTime(timezone=True), nullable=False),
        Column(names.user, user_id.type.copy(), nullable=True),
        schema=schema or None,
        comment=f"Version history of {model.__name__}",
    )

    history_model = type(
        names.model,
        (),
        {
            "__module__": model.__module__,
            "__doc__": f"Immutable snapshots of {model.__name__} rows.",
            "__init__": registry.constructor,
        },
    )
    user_column = table.c[names.user]
    registry.map_imperatively(
        history_model,
        table,
        properties={
            names.user_relation: relationship(
                user_model,
                primaryjoin=user_column == user_id,
                foreign_keys=[user_column],
                viewonly=True,
            ),
        },
    )
    logger.info("[VERSIONING] defined %s on table %s", names.model, table_key)
    return HistoryStore(model=history_model, table=table, names=names, fields=tuple(fields), user_key=user_key)
