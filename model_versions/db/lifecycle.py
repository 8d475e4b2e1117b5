"""Named lifecycle hooks for mapped classes, fed by SQLAlchemy events.

Singular writes arrive through mapper flush events. ORM-enabled bulk
``insert()``/``update()`` statements and ORM selects arrive through the
``Session.do_orm_execute`` event, where the statement is re-invoked on the
caller's behalf so per-instance hooks can fire around it when a bulk hook asks
for them.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy import event, inspect, select, tuple_
from sqlalchemy.engine import Connection, Result
from sqlalchemy.orm import Mapper, ORMExecuteState, Session, object_session

from model_versions.core.errors import ConfigurationError
from model_versions.models.version import Hook

logger = logging.getLogger(__name__)

INTERNAL_OPTION = "model_versions_internal"
_REGISTRY_KEY = "model_versions.lifecycle_hooks"


@dataclass
class HookContext:
    """What a handler knows about the operation that fired its hook."""

    session: Session | None
    transaction: Connection | None
    individual_hooks: bool = False
    in_bulk: bool = False


HookHandler = Callable[[Any, HookContext], None]


class LifecycleHooks:
    """Hook registry for one mapped class."""

    def __init__(self, mapper: Mapper) -> None:
        self.mapper = mapper
        self._handlers: dict[Hook, list[HookHandler]] = defaultdict(list)
        self._listen()

    def add_hook(self, hook: Hook | str, handler: HookHandler) -> None:
        self._handlers[Hook(hook)].append(handler)

    def observes(self, *hooks: Hook) -> bool:
        return any(self._handlers.get(hook) for hook in hooks)

    def run(self, hook: Hook, payload: Any, context: HookContext) -> None:
        for handler in list(self._handlers.get(hook, ())):
            handler(payload, context)

    def _listen(self) -> None:
        model = self.mapper.class_
        event.listen(model, "before_insert", self._before_insert)
        event.listen(model, "after_insert", self._after_insert)
        event.listen(model, "before_update", self._before_update)
        event.listen(model, "after_update", self._after_update)
        event.listen(model, "before_delete", self._before_delete)
        event.listen(model, "after_delete", self._after_delete)

    # -- unit of work ---------------------------------------------------

    def _flush_context(self, target: Any, connection: Connection) -> HookContext:
        return HookContext(session=object_session(target), transaction=connection)

    @staticmethod
    def _has_changes(target: Any) -> bool:
        session = object_session(target)
        return session is None or session.is_modified(target, include_collections=False)

    def _before_insert(self, mapper: Mapper, connection: Connection, target: Any) -> None:
        context = self._flush_context(target, connection)
        self.run(Hook.BEFORE_CREATE, target, context)
        self.run(Hook.BEFORE_SAVE, target, context)

    def _after_insert(self, mapper: Mapper, connection: Connection, target: Any) -> None:
        context = self._flush_context(target, connection)
        self.run(Hook.AFTER_CREATE, target, context)
        self.run(Hook.AFTER_SAVE, target, context)

    def _before_update(self, mapper: Mapper, connection: Connection, target: Any) -> None:
        if not self._has_changes(target):
            return
        context = self._flush_context(target, connection)
        self.run(Hook.BEFORE_UPDATE, target, context)
        self.run(Hook.BEFORE_SAVE, target, context)

    def _after_update(self, mapper: Mapper, connection: Connection, target: Any) -> None:
        if not self._has_changes(target):
            return
        context = self._flush_context(target, connection)
        self.run(Hook.AFTER_UPDATE, target, context)
        self.run(Hook.AFTER_SAVE, target, context)

    def _before_delete(self, mapper: Mapper, connection: Connection, target: Any) -> None:
        self.run(Hook.BEFORE_DESTROY, target, self._flush_context(target, connection))

    def _after_delete(self, mapper: Mapper, connection: Connection, target: Any) -> None:
        self.run(Hook.AFTER_DESTROY, target, self._flush_context(target, connection))

    # -- statements -----------------------------------------------------

    def _on_orm_execute(self, state: ORMExecuteState) -> Result[Any] | None:
        if state.is_insert:
            return self._bulk_create(state)
        if state.is_update:
            return self._bulk_update(state)
        if state.is_select and not (state.is_column_load or state.is_relationship_load):
            return self._find(state)
        return None

    def _statement_context(self, state: ORMExecuteState) -> HookContext:
        connection = state.session.connection(bind_arguments={"mapper": self.mapper})
        return HookContext(session=state.session, transaction=connection)

    def _bulk_create(self, state: ORMExecuteState) -> Result[Any] | None:
        if not self.observes(Hook.BEFORE_BULK_CREATE, Hook.AFTER_BULK_CREATE, Hook.AFTER_CREATE, Hook.AFTER_SAVE):
            return None
        context = self._statement_context(state)
        self.run(Hook.BEFORE_BULK_CREATE, [], context)
        if not context.individual_hooks:
            result = state.invoke_statement()
            self.run(Hook.AFTER_BULK_CREATE, [], context)
            return result

        identities = self._given_identities(state)
        if identities is not None:
            result = state.invoke_statement()
        else:
            result, identities = self._insert_returning_identities(state, context.transaction)
        instances = self._load(state, identities)

        context.in_bulk = True
        for instance in instances:
            self.run(Hook.AFTER_CREATE, instance, context)
            self.run(Hook.AFTER_SAVE, instance, context)
        self.run(Hook.AFTER_BULK_CREATE, instances, context)
        logger.debug("[VERSIONING] bulk create on %s expanded to %d instance(s)", self.mapper.class_.__name__, len(instances))
        return result

    def _given_identities(self, state: ORMExecuteState) -> list[tuple[Any, ...]] | None:
        """Primary keys spelled out in the insert parameters, or ``None``."""
        rows = state.parameters if state.is_executemany else [state.parameters or {}]
        keys = [self.mapper.get_property_by_column(column).key for column in self.mapper.primary_key]
        if not all(all(row.get(key) is not None for key in keys) for row in rows):
            return None
        return [tuple(row[key] for key in keys) for row in rows]

    def _insert_returning_identities(
        self, state: ORMExecuteState, connection: Connection
    ) -> tuple[Result[Any], list[tuple[Any, ...]]]:
        dialect = connection.dialect
        if state.is_executemany:
            supported = dialect.insert_executemany_returning_sort_by_parameter_order
        else:
            supported = dialect.insert_returning
        if not supported:
            raise ConfigurationError(
                f"Bulk insert into {self.mapper.class_.__name__} needs primary key values in its parameters: "
                f"the {dialect.name} dialect cannot return generated keys"
            )

        pk_columns = self.mapper.primary_key
        statement = state.statement.returning(*pk_columns, sort_by_parameter_order=True)
        frozen = state.invoke_statement(statement=statement).freeze()
        width = len(frozen().keys()) - len(pk_columns)
        identities = [tuple(row)[width:] for row in frozen().all()]
        result = frozen()
        return (result.columns(*range(width)) if width else result), identities

    def _bulk_update(self, state: ORMExecuteState) -> Result[Any] | None:
        if not self.observes(Hook.BEFORE_BULK_UPDATE, Hook.AFTER_BULK_UPDATE, Hook.AFTER_UPDATE, Hook.AFTER_SAVE):
            return None
        context = self._statement_context(state)
        self.run(Hook.BEFORE_BULK_UPDATE, [], context)
        if not context.individual_hooks:
            result = state.invoke_statement()
            self.run(Hook.AFTER_BULK_UPDATE, [], context)
            return result

        identities = self._affected_identities(state)
        context.in_bulk = True
        if self.observes(Hook.BEFORE_UPDATE, Hook.BEFORE_SAVE):
            for instance in self._load(state, identities):
                self.run(Hook.BEFORE_UPDATE, instance, context)
                self.run(Hook.BEFORE_SAVE, instance, context)

        result = state.invoke_statement()
        instances = self._load(state, identities, refresh=True)
        for instance in instances:
            self.run(Hook.AFTER_UPDATE, instance, context)
            self.run(Hook.AFTER_SAVE, instance, context)
        self.run(Hook.AFTER_BULK_UPDATE, instances, context)
        logger.debug("[VERSIONING] bulk update on %s expanded to %d instance(s)", self.mapper.class_.__name__, len(instances))
        return result

    def _find(self, state: ORMExecuteState) -> Result[Any] | None:
        if not self.observes(Hook.BEFORE_FIND, Hook.AFTER_FIND):
            return None
        context = self._statement_context(state)
        self.run(Hook.BEFORE_FIND, [], context)
        if not self.observes(Hook.AFTER_FIND):
            return None

        frozen = state.invoke_statement().freeze()
        model = self.mapper.class_
        found = {inspect(value).identity_key: value for row in frozen().all() for value in row if isinstance(value, model)}
        self.run(Hook.AFTER_FIND, list(found.values()), context)
        return frozen()

    def _affected_identities(self, state: ORMExecuteState) -> list[tuple[Any, ...]]:
        """Primary keys of the rows an ORM ``update()`` will touch."""
        pk_columns = self.mapper.primary_key
        if state.is_executemany:
            keys = [self.mapper.get_property_by_column(column).key for column in pk_columns]
            return [tuple(params[key] for key in keys) for params in state.parameters]

        statement = select(*pk_columns).execution_options(**{INTERNAL_OPTION: True})
        if state.statement.whereclause is not None:
            statement = statement.where(state.statement.whereclause)
        return [tuple(row) for row in state.session.execute(statement)]

    def _load(self, state: ORMExecuteState, identities: list[tuple[Any, ...]], refresh: bool = False) -> list[Any]:
        """Load instances for ``identities`` in the given order."""
        if not identities:
            return []
        pk_columns = self.mapper.primary_key
        if len(pk_columns) == 1:
            criteria = pk_columns[0].in_([identity[0] for identity in identities])
        else:
            criteria = tuple_(*pk_columns).in_(identities)
        statement = (
            select(self.mapper)
            .where(criteria)
            .execution_options(**{INTERNAL_OPTION: True, "populate_existing": refresh})
        )
        loaded = {tuple(self.mapper.primary_key_from_instance(obj)): obj for obj in state.session.scalars(statement)}
        return [loaded[identity] for identity in identities if identity in loaded]


def hooks_for(model: type) -> LifecycleHooks:
    """Return the hook registry of ``model``, creating it on first use."""
    mapper: Mapper = inspect(model)
    info = mapper.class_manager.info
    hooks = info.get(_REGISTRY_KEY)
    if hooks is None:
        hooks = info[_REGISTRY_KEY] = LifecycleHooks(mapper)
    return hooks


@event.listens_for(Session, "do_orm_execute")
def dispatch_orm_execute(state: ORMExecuteState) -> Result[Any] | None:
    """Route an ORM statement to the hook registry of the class it targets."""
    mapper = state.bind_mapper
    if mapper is None or state.execution_options.get(INTERNAL_OPTION):
        return None
    hooks = mapper.class_manager.info.get(_REGISTRY_KEY)
    if hooks is None or hooks.mapper is not mapper:
        return None
    return hooks._on_orm_execute(state)
