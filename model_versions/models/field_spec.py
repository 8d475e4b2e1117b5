"""Explicit field descriptors read from a mapped class."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy import Column, inspect
from sqlalchemy.orm import Mapper


@dataclass(frozen=True)
class FieldSpec:
    """One column-backed attribute of a tracked model.

    ``key`` is the attribute name. Everything else is a facet: ``type`` and
    ``name`` (the column name) describe storage, ``get`` and ``set`` are
    optional value transforms taken from ``Column.info``, and the remaining
    facets are constraints that only matter to the tracked table.
    """

    key: str
    type: Any = None
    name: str | None = None
    get: Callable[[Any], Any] | None = None
    set: Callable[[Any], Any] | None = None
    primary_key: bool = False
    nullable: bool = True
    default: Any = None
    unique: bool = False

    @property
    def column_name(self) -> str:
        return self.name or self.key


def describe_fields(model: type) -> list[FieldSpec]:
    """Return descriptors for every table-bound column attribute of ``model``."""
    mapper: Mapper = inspect(model)
    fields: list[FieldSpec] = []
    for prop in mapper.column_attrs:
        column = prop.columns[0]
        if not isinstance(column, Column):
            continue
        fields.append(
            FieldSpec(
                key=prop.key,
                type=column.type,
                name=column.name,
                get=column.info.get("get"),
                set=column.info.get("set"),
                primary_key=column.primary_key,
                nullable=bool(column.nullable),
                default=column.default,
                unique=bool(column.unique),
            )
        )
    return fields


def primary_key_fields(fields: list[FieldSpec]) -> list[FieldSpec]:
    """Return the identity subset of ``fields`` in declaration order."""
    return [field for field in fields if field.primary_key]
