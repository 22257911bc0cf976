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
"""Declarative setup: the fluent :class:`SearchableBuilder` and ``@searchable``.

Example::

    @searchable(
        predicates=("title", "status", "view_count", "published_at"),
        sorts=("title", "view_count", "published_at"),
        default_order=("sort_published_at_desc",),
        securities={"status_required": ["status_eq"]},
    )
    class Article(Base):
        ...

    stmt = searchable_for(Article).search({"title_cont": "sql"}, security="status_required")

The builder collects declarations; :meth:`SearchableBuilder.build` validates
them and returns a :class:`Searchable` holding only frozen configuration.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any, TypeVar

import structlog

from flysearch.core.config import Config
from flysearch.config.properties.search import SearchProperties
from flysearch.kernel.exceptions import SearchableConfigurationError
from flysearch.predicable.operators import Clock, utc_now
from flysearch.predicable.registry import ComplexPredicate, PredicateRegistry
from flysearch.searchable.composer import Searchable
from flysearch.searchable.config import SearchableConfig, SecurityPolicy
from flysearch.searchable.security import policy_name
from flysearch.sortable.registry import OrderBuilder, SortRegistry

T = TypeVar("T")

logger = structlog.get_logger("flysearch.searchable")

SEARCHABLE_ATTR = "__searchable__"


def _names(values: Iterable[Any] | str) -> list[str]:
    if isinstance(values, str):
        return [values]
    return [policy_name(v) for v in values]


class SearchableBuilder:
    """Fluent setup for one model's predicates, sorts and search limits.

    Args:
        model: Mapped SQLAlchemy model class.
        properties: Library-wide defaults; :class:`SearchProperties` defaults
            when omitted.
        clock: Time source for temporal shortcuts such as ``published_at_today``.
    """

    def __init__(
        self,
        model: type[Any],
        properties: SearchProperties | None = None,
        *,
        clock: Clock = utc_now,
    ) -> None:
        props = properties or SearchProperties()
        self._model = model
        self._predicates = PredicateRegistry(model, clock=clock)
        self._sorts = SortRegistry(model)
        self._default_order: tuple[str, ...] = ()
        self._limits: dict[str, Any] = {
            "per_page": props.per_page,
            "max_per_page": props.max_per_page,
            "max_page": props.max_page,
            "max_predicates": props.max_predicates,
            "max_or_conditions": props.max_or_conditions,
        }
        self._securities: dict[str, SecurityPolicy] = {}
        self._built = False

    @classmethod
    def from_config(cls, model: type[Any], config: Config, *, clock: Clock = utc_now) -> SearchableBuilder:
        """Start from the ``flysearch.search.*`` settings of *config*."""
        return cls(model, config.bind(SearchProperties), clock=clock)

    # -- declarations --------------------------------------------------------

    def predicates(self, *field_names: str) -> SearchableBuilder:
        self._check_open()
        self._predicates.predicates(*field_names)
        return self

    def complex_predicate(self, name: str, fn: ComplexPredicate) -> SearchableBuilder:
        self._check_open()
        self._predicates.register_complex_predicate(name, fn)
        return self

    def sort(self, *field_names: str) -> SearchableBuilder:
        self._check_open()
        self._sorts.sort(*field_names)
        return self

    def complex_sort(self, name: str, fn: OrderBuilder) -> SearchableBuilder:
        self._check_open()
        self._sorts.register_complex_sort(name, fn)
        return self

    def default_order(self, *names: Any) -> SearchableBuilder:
        """Sort scopes applied when a search requests no order."""
        self._check_open()
        flat: list[Any] = []
        for name in names:
            flat.extend(name if isinstance(name, (list, tuple)) else [name])
        self._default_order = tuple(_names(flat))
        return self

    def per_page(self, count: int) -> SearchableBuilder:
        return self._limit("per_page", count)

    def max_per_page(self, count: int) -> SearchableBuilder:
        return self._limit("max_per_page", count)

    def max_page(self, count: int | None) -> SearchableBuilder:
        """Upper bound for ``page``; ``None`` removes the bound."""
        return self._limit("max_page", count, optional=True)

    def max_predicates(self, count: int) -> SearchableBuilder:
        return self._limit("max_predicates", count)

    def max_or_conditions(self, count: int) -> SearchableBuilder:
        return self._limit("max_or_conditions", count)

    def security(self, name: Any, required: Iterable[Any] | str | None) -> SearchableBuilder:
        """Register a policy requiring every predicate in *required*."""
        self._check_open()
        key = policy_name(name)
        if required is None:
            raise SearchableConfigurationError(
                f"Security '{key}' requires predicates to be specified",
                model=self._model,
                expected="list of predicate names",
                provided=None,
            )
        names = frozenset(_names(required))
        if not names:
            raise SearchableConfigurationError(
                f"Security '{key}' must have at least one required predicate",
                model=self._model,
                expected="at least one predicate",
                provided="empty list",
            )
        self._securities[key] = SecurityPolicy(key, names)
        return self

    # -- build -----------------------------------------------------------------

    def build(self) -> Searchable[Any]:
        """Validate the declarations and freeze them into a :class:`Searchable`."""
        self._check_open()
        self._built = True
        predicates = self._predicates.build()
        sorts = self._sorts.build()

        per_page = self._limits["per_page"]
        max_per_page = self._limits["max_per_page"]
        if per_page > max_per_page:
            raise SearchableConfigurationError(
                f"per_page ({per_page}) cannot exceed max_per_page ({max_per_page})",
                model=self._model,
                expected=f"<= {max_per_page}",
                provided=per_page,
            )

        unknown_orders = [name for name in self._default_order if name not in sorts]
        if unknown_orders:
            raise SearchableConfigurationError(
                f"default_order references unknown sort scopes: {', '.join(unknown_orders)}",
                model=self._model,
                expected=f"one of: {', '.join(sorted(sorts)) or '(no sorts declared)'}",
                provided=unknown_orders,
            )

        for policy in self._securities.values():
            unknown = sorted(policy.required - set(predicates))
            if unknown:
                raise SearchableConfigurationError(
                    f"Security '{policy.name}' requires undeclared predicates: {', '.join(unknown)}",
                    model=self._model,
                    expected="declared predicate names",
                    provided=unknown,
                )

        config = SearchableConfig(
            default_order=self._default_order,
            per_page=per_page,
            max_per_page=max_per_page,
            max_page=self._limits["max_page"],
            max_predicates=self._limits["max_predicates"],
            max_or_conditions=self._limits["max_or_conditions"],
            securities=MappingProxyType(dict(self._securities)),
        )
        logger.debug(
            "searchable_built",
            model=self._model.__name__,
            predicates=len(predicates),
            sorts=len(sorts),
            securities=sorted(self._securities),
        )
        return Searchable(self._model, predicates, sorts, config)

    def _limit(self, name: str, count: Any, *, optional: bool = False) -> SearchableBuilder:
        self._check_open()
        if count is None and optional:
            self._limits[name] = None
            return self
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise SearchableConfigurationError(
                f"{name} must be a positive integer, got {count!r}",
                model=self._model,
                expected="integer >= 1",
                provided=count,
            )
        self._limits[name] = count
        return self

    def _check_open(self) -> None:
        if self._built:
            raise SearchableConfigurationError(
                "SearchableBuilder has already been built; its configuration is frozen",
                model=self._model,
            )


def searchable(
    *,
    predicates: Iterable[str] = (),
    sorts: Iterable[str] = (),
    complex_predicates: Mapping[str, ComplexPredicate] | None = None,
    complex_sorts: Mapping[str, OrderBuilder] | None = None,
    default_order: Iterable[Any] = (),
    per_page: int | None = None,
    max_per_page: int | None = None,
    max_page: int | None = None,
    max_predicates: int | None = None,
    max_or_conditions: int | None = None,
    securities: Mapping[Any, Iterable[Any]] | None = None,
    properties: SearchProperties | None = None,
    clock: Clock = utc_now,
) -> Callable[[type[T]], type[T]]:
    """Class decorator attaching a built :class:`Searchable` as ``__searchable__``.

    Limits left as ``None`` keep the values from *properties*.
    """

    def decorator(cls: type[T]) -> type[T]:
        builder = SearchableBuilder(cls, properties, clock=clock)
        if predicates:
            builder.predicates(*predicates)
        for name, fn in (complex_predicates or {}).items():
            builder.complex_predicate(name, fn)
        if sorts:
            builder.sort(*sorts)
        for name, fn in (complex_sorts or {}).items():
            builder.complex_sort(name, fn)
        if default_order:
            builder.default_order(*default_order)
        for limit, value in (
            ("per_page", per_page),
            ("max_per_page", max_per_page),
            ("max_page", max_page),
            ("max_predicates", max_predicates),
            ("max_or_conditions", max_or_conditions),
        ):
            if value is not None:
                getattr(builder, limit)(value)
        for name, required in (securities or {}).items():
            builder.security(name, required)
        setattr(cls, SEARCHABLE_ATTR, builder.build())
        return cls

    return decorator


def searchable_for(model: type[T]) -> Searchable[T]:
    """Return the :class:`Searchable` attached to *model* by ``@searchable``."""
    found = getattr(model, SEARCHABLE_ATTR, None)
    if not isinstance(found, Searchable):
        raise SearchableConfigurationError(
            f"{getattr(model, '__name__', model)!r} is not searchable; decorate it with @searchable",
            model=model if isinstance(model, type) else None,
        )
    return found
