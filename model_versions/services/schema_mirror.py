"""Copy a tracked model's field descriptors into a history field set."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy.types import TypeEngine

from model_versions.models.field_spec import FieldSpec

MIRRORED_FACETS: tuple[str, ...] = ("type", "name", "get", "set")


def _copy_facet(value: Any) -> Any:
    if isinstance(value, TypeEngine):
        return value.copy()
    return value


def mirror_fields(
    fields: Iterable[FieldSpec],
    exclude: Iterable[str] = (),
    facets: Iterable[str] = MIRRORED_FACETS,
) -> list[FieldSpec]:
    """Return history descriptors for every field not in ``exclude``.

    Only the allow-listed facets survive; keys, defaults, uniqueness and
    nullability belong to the tracked table, not to captured snapshots.
    """
    excluded = set(exclude)
    kept = tuple(facets)
    return [
        FieldSpec(key=field.key, **{facet: _copy_facet(getattr(field, facet)) for facet in kept})
        for field in fields
        if field.key not in excluded
    ]
