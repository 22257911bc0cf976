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
"""Predicate registry: generates the named predicates of a model's fields.

Declaring a field classifies its column type and generates one
:class:`PredicateDefinition` per operator of that family, named
``{field}_{suffix}``. The mutable :class:`PredicateRegistry` is only used
during setup; :meth:`PredicateRegistry.build` returns an immutable
:class:`Predicates` mapping which is what runtime code reads.

Example::

    predicates = (
        PredicateRegistry(Article)
        .predicates("title", "view_count", "published_at")
        .register_complex_predicate(
            "popular_since",
            lambda root, since, views: and_(root.published_at >= since, root.view_count >= views),
        )
        .build()
    )

    stmt = predicates["title_cont"].apply(Article, select(Article), "rails")
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import structlog
from sqlalchemy import ColumnElement, Select
from sqlalchemy import inspect as sa_inspect

from flysearch.data.relational.specification import Specification
from flysearch.kernel.exceptions import PredicableConfigurationError
from flysearch.predicable.operators import Arity, Clock, Operator, as_flag, operators_for, utc_now
from flysearch.predicable.types import TypeFamily, classify

logger = structlog.get_logger("flysearch.predicable")

ComplexPredicate = Callable[..., "ColumnElement[bool] | Specification[Any]"]


@dataclass(frozen=True)
class FieldDeclaration:
    """A declared field and its resolved type family."""

    name: str
    family: TypeFamily
    column_type: Any = None


@dataclass(frozen=True)
class PredicateDefinition:
    """A named predicate bound to one field and one operator.

    Complex predicates have no field, suffix or family and take variadic
    arguments.
    """

    name: str
    arity: Arity
    build: Callable[..., ColumnElement[bool]]
    field: str | None = None
    suffix: str | None = None
    family: TypeFamily | None = None

    @property
    def is_complex(self) -> bool:
        return self.field is None

    def args_for(self, value: Any) -> tuple[Any, ...]:
        """Translate a search value into positional arguments."""
        if self.arity is Arity.FLAG:
            return (as_flag(value),)
        if self.arity is Arity.TWO:
            return tuple(value)
        if self.arity is Arity.VARIADIC and isinstance(value, (list, tuple)):
            return tuple(value)
        return (value,)

    def clause(self, root: type[Any], *args: Any) -> ColumnElement[bool]:
        """Build this predicate's boolean clause against *root*."""
        return self.build(root, *args)

    def to_specification(self, *args: Any) -> Specification[Any]:
        """Return a composable specification with *args* bound."""
        return Specification.of(lambda root: self.build(root, *args))

    def apply(self, root: type[Any], stmt: Select[Any], *args: Any) -> Select[Any]:
        """Return a new statement with this predicate ANDed onto *stmt*."""
        return stmt.where(self.build(root, *args))


def _field_builder(field_name: str, operator: Operator) -> Callable[..., ColumnElement[bool]]:
    def build(root: type[Any], *args: Any) -> ColumnElement[bool]:
        return operator.build(getattr(root, field_name), *args)

    return build


def _complex_builder(fn: ComplexPredicate) -> Callable[..., ColumnElement[bool]]:
    def build(root: type[Any], *args: Any) -> ColumnElement[bool]:
        result = fn(root, *args)
        if isinstance(result, Specification):
            clause = result.to_clause(root)
            if clause is None:
                raise PredicableConfigurationError(
                    "Complex predicates must return a boolean clause or a clause-backed Specification",
                    model=root,
                    provided=type(result).__name__,
                )
            return clause
        return result

    return build


@dataclass(frozen=True, eq=False)
class Predicates(Mapping[str, PredicateDefinition]):
    """Immutable mapping of predicate name to :class:`PredicateDefinition`.

    Item assignment is unsupported and attribute assignment raises
    ``FrozenInstanceError``.
    """

    model: type[Any]
    definitions: Mapping[str, PredicateDefinition]
    fields: Mapping[str, FieldDeclaration] = field(default_factory=lambda: MappingProxyType({}))

    def __getitem__(self, name: str) -> PredicateDefinition:
        return self.definitions[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.definitions)

    def __len__(self) -> int:
        return len(self.definitions)

    @property
    def complex_names(self) -> frozenset[str]:
        return frozenset(name for name, d in self.definitions.items() if d.is_complex)

    def has_field(self, field_name: str) -> bool:
        """Whether *field_name* was declared with predicates."""
        return field_name in self.fields

    def names_for(self, field_name: str) -> list[str]:
        """Predicate names generated for *field_name*, in declaration order."""
        return [name for name, d in self.definitions.items() if d.field == field_name]

    def suffixes_for(self, field_name: str) -> list[str]:
        """Operator suffixes available for *field_name* (``["eq", "cont", ...]``)."""
        return [d.suffix for d in self.definitions.values() if d.field == field_name and d.suffix]


class PredicateRegistry:
    """Mutable builder collecting field declarations for one model.

    Args:
        model: A mapped SQLAlchemy model class.
        clock: Time source for the temporal shortcuts (``today``, ``within``, ...).
    """

    def __init__(self, model: type[Any], *, clock: Clock = utc_now) -> None:
        self._model = model
        self._clock = clock
        self._fields: dict[str, FieldDeclaration] = {}
        self._definitions: dict[str, PredicateDefinition] = {}
        self._built = False

    def predicates(self, *field_names: str) -> PredicateRegistry:
        """Declare fields, classifying each from the model's mapped column."""
        mapper = sa_inspect(self._model, raiseerr=False)
        if mapper is None or not hasattr(mapper, "columns"):
            raise PredicableConfigurationError(
                f"{self._model!r} is not a mapped SQLAlchemy model",
                expected="mapped model class",
                provided=repr(self._model),
            )
        for field_name in field_names:
            column = mapper.columns.get(field_name)
            if column is None:
                raise PredicableConfigurationError(
                    f"Invalid field name: {field_name}. Field does not exist in {self._model.__name__}",
                    model=self._model,
                    expected=f"one of: {', '.join(sorted(mapper.columns.keys()))}",
                    provided=field_name,
                )
            self.register_field(field_name, classify(column.type), column.type)
        return self

    def register_field(
        self,
        field_name: str,
        family: TypeFamily,
        column_type: Any = None,
    ) -> frozenset[PredicateDefinition]:
        """Generate and register the predicates of one field."""
        self._check_open()
        if field_name in self._fields:
            raise PredicableConfigurationError(
                f"Field '{field_name}' already has predicates declared",
                model=self._model,
                provided=field_name,
            )
        self._fields[field_name] = FieldDeclaration(field_name, family, column_type)

        generated: list[PredicateDefinition] = []
        for operator in operators_for(family, column_type, self._clock):
            definition = PredicateDefinition(
                name=f"{field_name}_{operator.suffix}",
                arity=operator.arity,
                build=_field_builder(field_name, operator),
                field=field_name,
                suffix=operator.suffix,
                family=family,
            )
            self._add(definition)
            generated.append(definition)

        logger.debug(
            "predicates_declared",
            model=self._model.__name__,
            field=field_name,
            family=family.value,
            count=len(generated),
        )
        return frozenset(generated)

    def register_complex_predicate(self, name: str, fn: ComplexPredicate) -> PredicateRegistry:
        """Register a free-form predicate ``fn(root, *args) -> clause``.

        The callable may also return a clause-backed :class:`Specification`.
        """
        self._check_open()
        if not callable(fn):
            raise PredicableConfigurationError(
                f"Complex predicate '{name}' requires a callable",
                model=self._model,
                expected="callable(root, *args)",
                provided=type(fn).__name__,
            )
        self._add(PredicateDefinition(name=name, arity=Arity.VARIADIC, build=_complex_builder(fn)))
        return self

    def build(self) -> Predicates:
        """Freeze the registry into an immutable :class:`Predicates` mapping."""
        self._check_open()
        self._built = True
        return Predicates(
            model=self._model,
            definitions=MappingProxyType(dict(self._definitions)),
            fields=MappingProxyType(dict(self._fields)),
        )

    def _add(self, definition: PredicateDefinition) -> None:
        if definition.name in self._definitions:
            raise PredicableConfigurationError(
                f"Predicate '{definition.name}' is already registered",
                model=self._model,
                provided=definition.name,
            )
        self._definitions[definition.name] = definition

    def _check_open(self) -> None:
        if self._built:
            raise PredicableConfigurationError(
                "Predicate registry is frozen; declare predicates before build()",
                model=self._model,
            )
