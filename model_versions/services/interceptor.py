"""Write one history row per affected instance for every observed lifecycle event."""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.attributes import set_committed_value

from model_versions.core.errors import PersistenceError
from model_versions.db.lifecycle import HookContext, LifecycleHooks
from model_versions.models.version import BULK_COUNTERPARTS, BULK_HOOKS, Hook, VersionType, version_type_for_hook
from model_versions.schemas.options import VersionOptions
from model_versions.services.history_store import HistoryStore
from model_versions.utils.time import utc_now

logger = logging.getLogger(__name__)


def _force_individual_hooks(instances: Any, context: HookContext) -> None:
    context.individual_hooks = True


def _as_list(payload: Any) -> list[Any]:
    if isinstance(payload, (list, tuple)):
        return list(payload)
    return [payload]


class VersionInterceptor:
    """Turns lifecycle events of a tracked model into history rows."""

    def __init__(self, model: type, store: HistoryStore, options: VersionOptions) -> None:
        self.model = model
        self.store = store
        self.options = options
        self.hooks: tuple[Hook, ...] = options.hooks
        # Unmapped hooks raise ConfigurationError here, at registration.
        self._version_types: dict[Hook, VersionType] = {hook: version_type_for_hook(hook) for hook in self.hooks}

    def install(self, registry: LifecycleHooks) -> None:
        for hook in BULK_HOOKS:
            registry.add_hook(hook, _force_individual_hooks)
        if Hook.AFTER_DESTROY in self.hooks:
            # The row is gone by the time after_destroy fires.
            registry.add_hook(Hook.BEFORE_DESTROY, lambda instance, context: self.load_unloaded([instance], context))
        for hook in self.hooks:
            registry.add_hook(hook, self._handler(hook))

    def _handler(self, hook: Hook):
        version_type = self._version_types[hook]
        bulk_counterpart = BULK_COUNTERPARTS.get(hook)

        def handle(payload: Any, context: HookContext) -> None:
            if context.in_bulk and bulk_counterpart in self.hooks:
                return
            self.record(_as_list(payload), version_type, context)

        handle.__name__ = f"version_{hook.value}"
        return handle

    def resolve_transaction(self, context: HookContext) -> Any:
        """Pick the connection the history insert runs on.

        With shared storage the namespace transaction wins over the event's
        own connection. With a separate ``bind`` only the namespace
        transaction is usable; ``None`` means a transaction of its own.
        """
        namespace = self.options.namespace
        ambient = namespace.get("transaction") if namespace is not None else None
        if self.options.shares_storage:
            return ambient if ambient is not None else context.transaction
        return ambient

    def record(self, instances: list[Any], version_type: VersionType, context: HookContext) -> None:
        if not instances:
            return
        transaction = self.resolve_transaction(context)
        user = self.options.get_user_fn()

        condition = self.options.audit_condition_fn
        if condition is not None and not condition(self.model, instances, version_type, user):
            logger.debug("[VERSIONING] %s event on %s suppressed by audit condition", version_type.name, self.model.__name__)
            return

        self.load_unloaded(instances, context)
        names = self.store.names
        timestamp = utc_now()
        user_id = getattr(user, self.store.user_key) if user is not None else None
        rows = [
            {
                **self.snapshot(instance),
                names.type: int(version_type),
                names.timestamp: timestamp,
                names.user: user_id,
            }
            for instance in instances
        ]
        self._persist(rows, transaction)
        logger.debug("[VERSIONING] wrote %d %s row(s) to %s", len(rows), version_type.name, self.store.table.name)

    def load_unloaded(self, instances: list[Any], context: HookContext) -> None:
        """Read mirrored columns that are deferred or expired from the tracked row.

        Values are fetched on the event's own connection and set as committed
        state, so pending changes and the unit of work are left alone.
        """
        connection = context.transaction
        if connection is None:
            return
        mapper = inspect(self.model)
        for instance in instances:
            if isinstance(instance, Mapping):
                continue
            state = inspect(instance)
            if state.identity is None:
                continue
            unloaded = state.unloaded
            missing = [field.key for field in self.store.fields if field.key in unloaded and field.key in mapper.column_attrs]
            if not missing:
                continue
            columns = [mapper.column_attrs[key].columns[0] for key in missing]
            criteria = [column == value for column, value in zip(mapper.primary_key, state.identity)]
            row = connection.execute(select(*columns).where(*criteria)).first()
            if row is None:
                continue
            for key, value in zip(missing, row):
                set_committed_value(instance, key, value)

    def snapshot(self, instance: Any) -> dict[str, Any]:
        """Copy the loaded column values of ``instance`` without lazy loading."""
        source = instance if isinstance(instance, Mapping) else inspect(instance).dict
        values: dict[str, Any] = {}
        for field in self.store.fields:
            value = copy.deepcopy(source.get(field.key))
            values[field.key] = field.set(value) if field.set is not None else value
        return values

    def _persist(self, rows: list[dict[str, Any]], transaction: Any) -> None:
        statement = self.store.table.insert()
        try:
            if transaction is None and isinstance(self.options.bind, Engine):
                with self.options.bind.begin() as connection:
                    connection.execute(statement, rows)
            else:
                (transaction if transaction is not None else self.options.bind).execute(statement, rows)
        except SQLAlchemyError as exc:
            logger.exception("[VERSIONING] failed to write %d row(s) to %s", len(rows), self.store.table.name)
            raise PersistenceError(f"Could not write history for {self.model.__name__}: {exc}") from exc
