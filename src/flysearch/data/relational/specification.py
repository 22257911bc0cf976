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
"""SQLAlchemy specifications: composable, side-effect-free WHERE builders.

Every generated predicate is exposed as a :class:`Specification`, so callers
can combine them with ``&`` (AND), ``|`` (OR) and ``~`` (NOT) and apply the
result to any ``Select`` over the same entity.

Example::

    recent = Specification.of(lambda root: root.published_at >= cutoff)
    popular = Specification.of(lambda root: root.view_count > 100)

    stmt = (recent & ~popular).to_predicate(Article, select(Article))
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, Select, and_, not_, or_

T = TypeVar("T")

ClauseBuilder = Callable[[type[Any]], ColumnElement[bool]]


class Specification(Generic[T]):
    """Composable query predicate for SQLAlchemy ``Select`` statements.

    A specification wraps a callable receiving the entity class (``root``)
    and a ``Select``, returning a new ``Select``. Specifications built with
    :meth:`of` additionally know their boolean clause, which lets ``|`` and
    ``~`` combine clauses directly instead of re-applying whole statements.
    """

    def __init__(
        self,
        predicate: Callable[[type[T], Select[Any]], Select[Any]],
        *,
        clause: ClauseBuilder | None = None,
    ) -> None:
        self._predicate = predicate
        self._clause = clause

    @classmethod
    def of(cls, clause: ClauseBuilder) -> Specification[T]:
        """Build a specification from a function ``root -> boolean clause``."""
        return cls(lambda root, q: q.where(clause(root)), clause=clause)

    def to_predicate(self, root: type[T], query: Select[Any]) -> Select[Any]:
        """Apply this specification's predicate to *query*, returning a new statement."""
        return self._predicate(root, query)

    def to_clause(self, root: type[T]) -> ColumnElement[bool] | None:
        """Return the boolean clause, or ``None`` for statement-level specifications."""
        return self._clause(root) if self._clause is not None else None

    # ------------------------------------------------------------------
    # Combinators
    # ------------------------------------------------------------------

    def __and__(self, other: Specification[T]) -> Specification[T]:
        """Both specs must match; successive ``.where()`` calls are ANDed."""
        left, right = self._predicate, other._predicate
        clause: ClauseBuilder | None = None
        if self._clause is not None and other._clause is not None:
            lc, rc = self._clause, other._clause
            clause = lambda root: and_(lc(root), rc(root))  # noqa: E731
        return Specification(lambda root, q: right(root, left(root, q)), clause=clause)

    def __or__(self, other: Specification[T]) -> Specification[T]:
        """Either spec may match.

        Clause-backed specs are ORed directly. Otherwise each predicate is
        applied to the same query and the resulting ``whereclause`` elements
        are combined with ``or_()``.
        """
        if self._clause is not None and other._clause is not None:
            lc, rc = self._clause, other._clause
            return Specification.of(lambda root: or_(lc(root), rc(root)))

        left_pred, right_pred = self._predicate, other._predicate

        def or_predicate(root: type[T], query: Select[Any]) -> Select[Any]:
            left_clause = left_pred(root, query).whereclause
            right_clause = right_pred(root, query).whereclause
            if left_clause is None or right_clause is None:
                # One side does not filter at all, so the union is everything.
                return query
            return query.where(or_(left_clause, right_clause))

        return Specification(or_predicate)

    def __invert__(self) -> Specification[T]:
        """Negate this specification."""
        if self._clause is not None:
            clause = self._clause
            return Specification.of(lambda root: not_(clause(root)))

        pred = self._predicate

        def not_predicate(root: type[T], query: Select[Any]) -> Select[Any]:
            clause = pred(root, query).whereclause
            if clause is not None:
                return query.where(not_(clause))
            return query

        return Specification(not_predicate)
