# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Sort registry: named order scopes generated from a model's fields.

Every declared field gets ``sort_{field}_asc`` and ``sort_{field}_desc``.
String fields add case-insensitive ``_asc_i`` / ``_desc_i``, numeric fields
add explicit NULL placement (``_asc_nulls_last``, ...) and temporal fields
add ``_newest`` / ``_oldest``. Free-form orderings are registered with
:meth:`SortRegistry.register_complex_sort` as ``sort_{name}``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import structlog
from sqlalchemy import ColumnElement, Select, func
from sqlalchemy import inspect as sa_inspect

from flysearch.kernel.exceptions import SortableConfigurationError
from flysearch.predicable.types import TypeFamily, classify

logger = structlog.get_logger("flysearch.sortable")

OrderBuilder = Callable[[type[Any]], "ColumnElement[Any] | Sequence[ColumnElement[Any]]"]


@dataclass(frozen=True)
class SortDefinition:
    """A named order scope; ``field`` is ``None`` for complex sorts."""

    name: str
    build: OrderBuilder
    field: str | None = None

    @property
    def is_complex(self) -> bool:
        return self.field is None

    def clauses(self, root: type[Any]) -> tuple[ColumnElement[Any], ...]:
        result = self.build(root)
        if isinstance(result, (list, tuple)):
            return tuple(result)
        return (result,)

    def apply(self, root: type[Any], stmt: Select[Any]) -> Select[Any]:
        """Append this ordering to *stmt*."""
        return stmt.order_by(*self.clauses(root))


def _asc(name: str) -> OrderBuilder:
    return lambda root: getattr(root, name).asc()


def _desc(name: str) -> OrderBuilder:
    return lambda root: getattr(root, name).desc()


def _variants(name: str, family: TypeFamily) -> list[tuple[str, OrderBuilder]]:
    variants: list[tuple[str, OrderBuilder]] = [("asc", _asc(name)), ("desc", _desc(name))]
    if family is TypeFamily.STRING:
        variants += [
            ("asc_i", lambda root: func.lower(getattr(root, name)).asc()),
            ("desc_i", lambda root: func.lower(getattr(root, name)).desc()),
        ]
    elif family is TypeFamily.NUMERIC:
        variants += [
            ("asc_nulls_last", lambda root: getattr(root, name).asc().nulls_last()),
            ("desc_nulls_last", lambda root: getattr(root, name).desc().nulls_last()),
            ("asc_nulls_first", lambda root: getattr(root, name).asc().nulls_first()),
            ("desc_nulls_first", lambda root: getattr(root, name).desc().nulls_first()),
        ]
    elif family is TypeFamily.TEMPORAL:
        variants += [("newest", _desc(name)), ("oldest", _asc(name))]
    return variants


@dataclass(frozen=True, eq=False)
class Sorts(Mapping[str, SortDefinition]):
    """Immutable mapping of sort scope name to :class:`SortDefinition`."""

    model: type[Any]
    definitions: Mapping[str, SortDefinition]
    fields: frozenset[str] = field(default_factory=frozenset)

    def __getitem__(self, name: str) -> SortDefinition:
        return self.definitions[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.definitions)

    def __len__(self) -> int:
        return len(self.definitions)

    def has_field(self, field_name: str) -> bool:
        return field_name in self.fields

    def names_for(self, field_name: str) -> list[str]:
        return [name for name, d in self.definitions.items() if d.field == field_name]

    @property
    def complex_names(self) -> frozenset[str]:
        return frozenset(name for name, d in self.definitions.items() if d.is_complex)


class SortRegistry:
    """Mutable builder for a model's sort scopes; :meth:`build` freezes it."""

    def __init__(self, model: type[Any]) -> None:
        self._model = model
        self._fields: list[str] = []
        self._definitions: dict[str, SortDefinition] = {}
        self._built = False

    def sort(self, *field_names: str) -> SortRegistry:
        """Generate order scopes for each mapped column in *field_names*."""
        self._check_open()
        mapper = sa_inspect(self._model, raiseerr=False)
        if mapper is None or not hasattr(mapper, "columns"):
            raise SortableConfigurationError(
                f"{self._model!r} is not a mapped SQLAlchemy model",
                expected="mapped model class",
                provided=repr(self._model),
            )
        for field_name in field_names:
            column = mapper.columns.get(field_name)
            if column is None:
                raise SortableConfigurationError(
                    f"Invalid field name: {field_name}. Field does not exist in {self._model.__name__}",
                    model=self._model,
                    expected=f"one of: {', '.join(sorted(mapper.columns.keys()))}",
                    provided=field_name,
                )
            if field_name in self._fields:
                raise SortableConfigurationError(
                    f"Field '{field_name}' is already sortable",
                    model=self._model,
                    provided=field_name,
                )
            self._fields.append(field_name)
            family = classify(column.type)
            for suffix, build in _variants(field_name, family):
                self._add(SortDefinition(f"sort_{field_name}_{suffix}", build, field_name))
            logger.debug("sorts_declared", model=self._model.__name__, field=field_name, family=family.value)
        return self

    def register_complex_sort(self, name: str, fn: OrderBuilder) -> SortRegistry:
        """Register ``fn(root) -> clause(s)`` as ``sort_{name}``."""
        self._check_open()
        if not callable(fn):
            raise SortableConfigurationError(
                f"Complex sort '{name}' requires a callable",
                model=self._model,
                expected="callable(root)",
                provided=type(fn).__name__,
            )
        self._add(SortDefinition(f"sort_{name}", fn))
        return self

    def build(self) -> Sorts:
        self._check_open()
        self._built = True
        return Sorts(
            model=self._model,
            definitions=MappingProxyType(dict(self._definitions)),
            fields=frozenset(self._fields),
        )

    def _add(self, definition: SortDefinition) -> None:
        if definition.name in self._definitions:
            raise SortableConfigurationError(
                f"Sort '{definition.name}' is already registered",
                model=self._model,
                provided=definition.name,
            )
        self._definitions[definition.name] = definition

    def _check_open(self) -> None:
        if self._built:
            raise SortableConfigurationError("Sort registry is frozen; declare sorts before build()", model=self._model)
