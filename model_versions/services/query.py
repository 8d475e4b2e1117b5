"""Read history rows back for a tracked instance or a whole tracked model."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Select, and_, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import object_session

from model_versions.core.errors import ConfigurationError
from model_versions.models.field_spec import FieldSpec
from model_versions.services.history_store import HistoryStore


class VersionQuery:
    """Builds and runs selects against one history table.

    ``where`` filters are mappings of history attribute name to value. On an
    instance query the caller's filter is applied first and the instance's
    primary key values are layered on top, so they win on a clash.
    """

    def __init__(self, store: HistoryStore, identity: list[FieldSpec], bind: Any = None) -> None:
        self.store = store
        self.identity_keys: tuple[str, ...] = tuple(field.key for field in identity)
        self.bind = bind

    def select_all(
        self,
        where: Mapping[str, Any] | None = None,
        *,
        scope: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Select:
        table = self.store.table
        criteria = [table.c[key] == value for key, value in (where or {}).items()]
        if scope is not None:
            criteria.append(self.store.scope_criteria(scope))
        statement = select(*table.c).order_by(table.c[self.store.names.id])
        if criteria:
            statement = statement.where(and_(*criteria))
        if limit is not None:
            statement = statement.limit(limit)
        if offset is not None:
            statement = statement.offset(offset)
        return statement

    def select_for(self, instance: Any, where: Mapping[str, Any] | None = None, **filters: Any) -> Select:
        identity = {key: getattr(instance, key) for key in self.identity_keys}
        return self.select_all({**(where or {}), **identity}, **filters)

    def for_instance(self, instance: Any, session: Any = None, **filters: Any) -> list[dict[str, Any]]:
        """Return the history of ``instance`` as plain dicts, oldest first."""
        if session is None and self.bind is None:
            session = object_session(instance)
        return self._fetch(self.select_for(instance, **filters), session)

    def for_type(self, session: Any = None, **filters: Any) -> list[dict[str, Any]]:
        """Return history rows of every instance of the tracked model."""
        return self._fetch(self.select_all(**filters), session)

    @contextmanager
    def _executor(self, session: Any) -> Iterator[Any]:
        if session is not None:
            yield session
        elif isinstance(self.bind, Engine):
            with self.bind.connect() as connection:
                yield connection
        elif self.bind is not None:
            yield self.bind
        else:
            raise ConfigurationError("No session to read history from; pass one or configure a bind")

    def _fetch(self, statement: Select, session: Any) -> list[dict[str, Any]]:
        columns = list(self.store.table.c)
        getters = {field.key: field.get for field in self.store.fields if field.get is not None}
        with self._executor(session) as executor:
            rows = executor.execute(statement).all()
        records = []
        for row in rows:
            record = {column.key: value for column, value in zip(columns, row)}
            for key, getter in getters.items():
                record[key] = getter(record[key])
            records.append(record)
        return records
