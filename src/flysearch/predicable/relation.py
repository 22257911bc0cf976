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
"""Chainable predicate methods over a SQLAlchemy ``Select``.

A :class:`Relation` exposes every declared predicate as a method by looking
the attribute name up in the frozen predicate mapping, so no methods are
generated at runtime::

    relation = Relation(dispatcher)
    stmt = relation.title_cont("sql").view_count_gt(5).order_by(Article.id).statement

Attributes that are not predicates are forwarded to the wrapped statement;
results that are themselves ``Select`` objects are re-wrapped so chaining
continues.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from sqlalchemy import Select, select

from flysearch.predicable.dispatcher import PredicateDispatcher
from flysearch.predicable.operators import Arity, as_flag


class Relation:
    """Immutable wrapper pairing a statement with a model's predicates."""

    __slots__ = ("_dispatcher", "_statement")

    def __init__(self, dispatcher: PredicateDispatcher, statement: Select[Any] | None = None) -> None:
        object.__setattr__(self, "_dispatcher", dispatcher)
        object.__setattr__(
            self,
            "_statement",
            statement if statement is not None else select(dispatcher.predicates.model),
        )

    @property
    def statement(self) -> Select[Any]:
        """The wrapped, unexecuted statement."""
        return self._statement

    def where_predicate(self, name: str, value: Any = None) -> Relation:
        """Apply predicate *name* with a search-style *value*."""
        return Relation(self._dispatcher, self._dispatcher.apply(self._statement, name, value))

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        definition = self._dispatcher.predicates.get(name)
        if definition is not None:
            model = self._dispatcher.predicates.model

            def call(*args: Any) -> Relation:
                if definition.arity is Arity.FLAG and args:
                    args = (as_flag(args[0]),)
                return Relation(self._dispatcher, definition.apply(model, self._statement, *args))

            call.__name__ = name
            return call

        attr = getattr(self._statement, name)
        if callable(attr):
            return self._passthrough(attr)
        return attr

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self._dispatcher.predicates))

    def __repr__(self) -> str:
        return f"Relation({self._dispatcher.predicates.model.__name__}: {self._statement})"

    def _passthrough(self, method: Callable[..., Any]) -> Callable[..., Any]:
        def call(*args: Any, **kwargs: Any) -> Any:
            result = method(*args, **kwargs)
            if isinstance(result, Select):
                return Relation(self._dispatcher, result)
            return result

        return call
