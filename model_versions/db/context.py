"""Request-scoped values handed to the versioning layer by the caller."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any


class TransactionNamespace:
    """Holds the transaction (and anything else) bound for the current request.

    Each instance owns its own context variable, so two applications tracking
    models in one process never see each other's values. Pass the instance as
    the ``namespace`` option and bind values around the unit of work::

        with namespace.bind(transaction=connection, user=current_user):
            session.commit()
    """

    def __init__(self, name: str = "model_versions") -> None:
        self._values: ContextVar[dict[str, Any]] = ContextVar(name, default={})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get().get(key, default)

    @contextmanager
    def bind(self, **values: Any) -> Iterator["TransactionNamespace"]:
        token = self._values.set({**self._values.get(), **values})
        try:
            yield self
        finally:
            self._values.reset(token)
