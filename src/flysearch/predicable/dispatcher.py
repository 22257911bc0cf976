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
"""Name-based predicate dispatch over a frozen :class:`Predicates` mapping."""

from __future__ import annotations

from typing import Any

from sqlalchemy import ColumnElement, Select

from flysearch.kernel.exceptions import InvalidPredicateError
from flysearch.predicable.registry import PredicateDefinition, Predicates


class PredicateDispatcher:
    """Looks up predicates by name and applies them to a statement.

    Dispatch is a pure lookup-and-apply. Values are not validated here;
    coercion failures surface from SQLAlchemy or the database driver.
    """

    def __init__(self, model: type[Any], predicates: Predicates) -> None:
        self._model = model
        self._predicates = predicates

    @property
    def predicates(self) -> Predicates:
        return self._predicates

    def resolve(self, name: str, value: Any = None) -> PredicateDefinition:
        """Return the definition registered as *name*.

        Raises:
            InvalidPredicateError: If *name* is not a declared predicate.
        """
        definition = self._predicates.get(name)
        if definition is None:
            raise InvalidPredicateError(name, self._predicates.keys(), value=value, model=self._model)
        return definition

    def clause(self, name: str, value: Any = None) -> ColumnElement[bool]:
        """Build the boolean clause for predicate *name* with *value*."""
        definition = self.resolve(name, value)
        return definition.clause(self._model, *definition.args_for(value))

    def apply(self, stmt: Select[Any], name: str, value: Any = None) -> Select[Any]:
        """Return a new statement with predicate *name* ANDed onto *stmt*.

        ``between``-style predicates take a two-item sequence, flag
        predicates take an optional boolean, everything else receives
        *value* as-is.
        """
        return stmt.where(self.clause(name, value))
