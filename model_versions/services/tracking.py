"""Registration entry point: put a mapped class under version tracking."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, Table, inspect
from sqlalchemy.exc import NoInspectionAvailable

from model_versions.core.errors import ConfigurationError
from model_versions.db.lifecycle import hooks_for
from model_versions.models.field_spec import describe_fields, primary_key_fields
from model_versions.schemas.options import VersionOptions, build_options
from model_versions.services.history_store import HistoryStore, define_history_store
from model_versions.services.interceptor import VersionInterceptor
from model_versions.services.naming import HistoryNames, resolve_names
from model_versions.services.query import VersionQuery
from model_versions.services.schema_mirror import mirror_fields

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackedHistory:
    """Handle returned by ``track()`` for one tracked model."""

    tracked_model: type
    store: HistoryStore
    query: VersionQuery
    interceptor: VersionInterceptor
    options: VersionOptions

    @property
    def model(self) -> type:
        return self.store.model

    @property
    def table(self) -> Table:
        return self.store.table

    @property
    def names(self) -> HistoryNames:
        return self.store.names

    def scope(self, name: str) -> Select:
        return self.store.scope(name)

    def get_versions(self, instance: Any, session: Any = None, **filters: Any) -> list[dict[str, Any]]:
        return self.query.for_instance(instance, session=session, **filters)

    def get_all_versions(self, session: Any = None, **filters: Any) -> list[dict[str, Any]]:
        return self.query.for_type(session=session, **filters)


def track(model: type, options: VersionOptions | None = None, **overrides: Any) -> TrackedHistory:
    """Create the history store for ``model`` and start recording its events.

    Options come from process defaults, then ``options``, then keyword
    overrides. ``user_model`` and ``get_user_fn`` are required.
    """
    opts = build_options(options, **overrides)
    try:
        mapper = inspect(model)
    except NoInspectionAvailable:
        raise ConfigurationError(f"{model!r} is not a mapped class") from None

    fields = list(opts.fields) if opts.fields is not None else describe_fields(model)
    identity = primary_key_fields(fields)
    if not identity:
        raise ConfigurationError(f"{model.__name__} declares no primary key; its history could not be told apart")
    excluded_identity = sorted(field.key for field in identity if field.key in opts.exclude)
    if excluded_identity:
        raise ConfigurationError(f"Primary key field(s) {excluded_identity} of {model.__name__} cannot be excluded")

    local_table = mapper.local_table
    names = resolve_names(
        model.__name__,
        getattr(local_table, "name", model.__name__),
        prefix=opts.prefix,
        suffix=opts.suffix,
        attribute_prefix=opts.resolved_attribute_prefix,
        table_underscored=opts.table_underscored,
        underscored=opts.underscored,
    )
    store = define_history_store(
        model,
        mirror_fields(fields, opts.exclude),
        names,
        user_model=opts.user_model,
        registry=opts.registry if opts.registry is not None else mapper.registry,
        schema=opts.schema_name or getattr(local_table, "schema", None),
    )

    interceptor = VersionInterceptor(model, store, opts)
    interceptor.install(hooks_for(model))
    logger.info(
        "[VERSIONING] tracking %s into %s (hooks: %s)",
        model.__name__,
        store.table.fullname,
        ", ".join(hook.value for hook in opts.hooks),
    )
    return TrackedHistory(
        tracked_model=model,
        store=store,
        query=VersionQuery(store, identity, bind=opts.bind),
        interceptor=interceptor,
        options=opts,
    )
