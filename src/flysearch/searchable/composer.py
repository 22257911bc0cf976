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
"""Search composition: one entry point turning a predicate map into a ``Select``.

:meth:`Searchable.search` validates the whole request (security policy,
complexity limits, predicate names, order names, pagination, eager-loaded
relationships) before it builds anything, so a failing request never yields a
partially filtered statement. The returned statement is unexecuted; :meth:`Searchable.search_page`
and :meth:`Searchable.search_all` run it on an ``AsyncSession``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

import structlog
from sqlalchemy import ColumnElement, Select, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from flysearch.data.page import Page
from flysearch.kernel.exceptions import InvalidOrderError, QueryComplexityError, SearchableConfigurationError
from flysearch.predicable.dispatcher import PredicateDispatcher
from flysearch.predicable.registry import Predicates
from flysearch.predicable.relation import Relation
from flysearch.searchable.config import SearchableConfig
from flysearch.searchable.loading import loader_options
from flysearch.searchable.pagination import PageRequest, PaginationValidator
from flysearch.searchable.query import QueryNode, parse_request
from flysearch.searchable.security import SecurityPolicyEvaluator
from flysearch.sortable.registry import Sorts

T = TypeVar("T")

logger = structlog.get_logger("flysearch.searchable")

_PAGINATION_KEYS = frozenset({"page", "per_page"})


@dataclass(frozen=True)
class _SearchPlan:
    request: QueryNode
    orders: tuple[str, ...]
    page: PageRequest | None
    loaders: tuple[Any, ...] = ()


def _order_name(order: Any) -> str:
    if isinstance(order, Enum):
        return str(order.value)
    return str(order)


class Searchable(Generic[T]):
    """Composes predicates, OR groups, orders and pagination for one model.

    Instances are built by :class:`~flysearch.searchable.builder.SearchableBuilder`
    and hold only frozen configuration, so one instance can serve concurrent
    callers.
    """

    def __init__(self, model: type[T], predicates: Predicates, sorts: Sorts, config: SearchableConfig) -> None:
        self._model = model
        self._predicates = predicates
        self._sorts = sorts
        self._config = config
        self._dispatcher = PredicateDispatcher(model, predicates)
        self._security = SecurityPolicyEvaluator(config.securities, model=model)
        self._pagination = PaginationValidator(
            config.per_page, config.max_per_page, config.max_page, model=model
        )

    @property
    def model(self) -> type[T]:
        return self._model

    @property
    def predicates(self) -> Predicates:
        return self._predicates

    @property
    def sorts(self) -> Sorts:
        return self._sorts

    @property
    def config(self) -> SearchableConfig:
        """Frozen limits, default order and security policies."""
        return self._config

    # -- composition ----------------------------------------------------------

    def search(
        self,
        predicates: Mapping[Any, Any] | None = None,
        *,
        orders: Sequence[Any] | str | None = None,
        pagination: Mapping[str, Any] | None = None,
        security: Any = None,
        includes: Any = None,
        preload: Any = None,
        eager_load: Any = None,
    ) -> Select[tuple[T]]:
        """Build the filtered, ordered and paginated statement.

        Args:
            predicates: Predicate map, e.g. ``{"status_eq": "draft"}``. The
                reserved ``or`` key holds a list of predicate maps whose
                results are OR-ed together and AND-ed with the rest.
            orders: Sort scope names; the configured default order is used
                when empty.
            pagination: ``{"page": ..., "per_page": ...}``; ``None`` leaves the
                statement unpaginated.
            security: Name of a registered security policy.
            includes: Relationships to load with a follow-up ``SELECT ... IN``;
                names, dotted paths (``"comments.author"``) or nested mappings.
            preload: Same as *includes*.
            eager_load: Relationships to load through a ``LEFT OUTER JOIN``.

        Raises:
            SearchableConfigurationError: Malformed input or, as
                :class:`QueryComplexityError`, limits exceeded.
            InvalidSecurityError: Policy unknown or not satisfied.
            InvalidPredicateError: Unknown predicate name.
            InvalidOrderError: Unknown sort scope name.
            InvalidPaginationError: ``page`` or ``per_page`` out of bounds.
        """
        plan = self._plan(
            predicates, orders, pagination, security, includes=includes, preload=preload, eager_load=eager_load
        )
        stmt = self._ordered(self._filtered(plan), plan).options(*plan.loaders)
        if plan.page is not None:
            stmt = plan.page.apply(stmt)
        logger.debug(
            "search_composed",
            model=self.model.__name__,
            predicates=plan.request.predicate_count(),
            orders=list(plan.orders),
            page=plan.page.page if plan.page else None,
            per_page=plan.page.per_page if plan.page else None,
        )
        return stmt

    async def search_page(
        self,
        session: AsyncSession,
        predicates: Mapping[Any, Any] | None = None,
        *,
        orders: Sequence[Any] | str | None = None,
        pagination: Mapping[str, Any] | None = None,
        security: Any = None,
        includes: Any = None,
        preload: Any = None,
        eager_load: Any = None,
    ) -> Page[T]:
        """Run the search and return one :class:`Page` with the total count.

        Without *pagination* the first page at the configured ``per_page``
        is returned.
        """
        plan = self._plan(
            predicates, orders, pagination, security, includes=includes, preload=preload, eager_load=eager_load
        )
        page = plan.page if plan.page is not None else self._pagination.validate()
        filtered = self._filtered(plan)

        count_stmt = select(func.count()).select_from(filtered.subquery())
        total_result = await session.execute(count_stmt)
        total = total_result.scalar_one()

        stmt = page.apply(self._ordered(filtered, plan).options(*plan.loaders))
        result = await session.execute(stmt)
        items = list(result.scalars().unique().all())
        return Page(items=items, total=total, page=page.page, per_page=page.per_page)

    async def search_all(
        self,
        session: AsyncSession,
        predicates: Mapping[Any, Any] | None = None,
        *,
        orders: Sequence[Any] | str | None = None,
        pagination: Mapping[str, Any] | None = None,
        security: Any = None,
        includes: Any = None,
        preload: Any = None,
        eager_load: Any = None,
    ) -> list[T]:
        """Run the search and return every matching row."""
        stmt = self.search(
            predicates,
            orders=orders,
            pagination=pagination,
            security=security,
            includes=includes,
            preload=preload,
            eager_load=eager_load,
        )
        result = await session.execute(stmt)
        return list(result.scalars().unique().all())

    def relation(self, statement: Select[Any] | None = None) -> Relation:
        """Chainable predicate methods over *statement* (``select(model)`` by default)."""
        return Relation(self._dispatcher, statement)

    # -- introspection ----------------------------------------------------------

    @property
    def searchable_fields(self) -> list[str]:
        return list(self.predicates.fields)

    @property
    def predicate_names(self) -> frozenset[str]:
        return frozenset(self.predicates)

    def searchable_field(self, field_name: str) -> bool:
        """Whether *field_name* has predicates declared."""
        return self.predicates.has_field(field_name)

    def predicates_for(self, field_name: str) -> list[str]:
        """Operator suffixes available for *field_name*; empty when undeclared."""
        return self.predicates.suffixes_for(field_name)

    def sorts_for(self, field_name: str) -> list[str]:
        """Sort scope names generated for *field_name*."""
        return self.sorts.names_for(field_name)

    def metadata(self) -> dict[str, Any]:
        """Describe what clients may search and sort by, e.g. to build forms."""
        sortable_fields = sorted(self.sorts.fields)
        return {
            "searchable_fields": self.searchable_fields,
            "sortable_fields": sortable_fields,
            "available_predicates": {f: self.predicates_for(f) for f in self.searchable_fields},
            "complex_predicates": sorted(self.predicates.complex_names),
            "available_sorts": {f: self.sorts_for(f) for f in sortable_fields},
            "complex_sorts": sorted(self.sorts.complex_names),
            "default_order": list(self.config.default_order),
            "pagination": {
                "per_page": self.config.per_page,
                "max_per_page": self.config.max_per_page,
                "max_page": self.config.max_page,
            },
            "securities": {name: sorted(p.required) for name, p in self.config.securities.items()},
        }

    # -- internals ----------------------------------------------------------------

    def _plan(
        self,
        predicates: Mapping[Any, Any] | None,
        orders: Sequence[Any] | str | None,
        pagination: Mapping[str, Any] | None,
        security: Any,
        **loading: Any,
    ) -> _SearchPlan:
        request = parse_request(predicates, model=self.model, max_depth=self.config.max_or_conditions)
        if security is not None:
            self._security.enforce(security, request)
        self._check_complexity(request)
        for node in request.walk():
            for term in node.terms:
                self._dispatcher.resolve(term.name, term.value)
        order_names = self._resolve_orders(orders)
        page = self._page_request(pagination) if pagination is not None else None
        loaders = loader_options(self.model, **loading)
        return _SearchPlan(request, order_names, page, loaders)

    def _check_complexity(self, request: QueryNode) -> None:
        total = request.predicate_count()
        if total > self.config.max_predicates:
            logger.warning("search_too_complex", model=self.model.__name__, predicates=total)
            raise QueryComplexityError("max_predicates", self.config.max_predicates, total, model=self.model)
        branches = sum(len(node.branches) for node in request.walk())
        if branches > self.config.max_or_conditions:
            logger.warning("search_too_complex", model=self.model.__name__, or_conditions=branches)
            raise QueryComplexityError(
                "max_or_conditions", self.config.max_or_conditions, branches, model=self.model
            )

    def _resolve_orders(self, orders: Sequence[Any] | str | None) -> tuple[str, ...]:
        if isinstance(orders, (str, Enum)):
            orders = [orders]
        names = tuple(_order_name(o) for o in orders) if orders else self.config.default_order
        for name in names:
            if name not in self.sorts:
                raise InvalidOrderError(name, self.sorts.keys(), model=self.model)
        return names

    def _page_request(self, pagination: Mapping[str, Any]) -> PageRequest:
        if not isinstance(pagination, Mapping):
            raise SearchableConfigurationError(
                f"Pagination must be a mapping, got {type(pagination).__name__}",
                model=self.model,
                expected="{'page': int, 'per_page': int}",
                provided=type(pagination).__name__,
            )
        unknown = set(pagination) - _PAGINATION_KEYS
        if unknown:
            raise SearchableConfigurationError(
                f"Unknown pagination keys: {', '.join(sorted(map(str, unknown)))}",
                model=self.model,
                expected="page, per_page",
                provided=sorted(map(str, unknown)),
            )
        return self._pagination.validate(pagination.get("page"), pagination.get("per_page"))

    def _filtered(self, plan: _SearchPlan) -> Select[tuple[T]]:
        stmt = select(self.model)
        clause = self._node_clause(plan.request)
        if clause is not None:
            stmt = stmt.where(clause)
        return stmt

    def _ordered(self, stmt: Select[Any], plan: _SearchPlan) -> Select[Any]:
        for name in plan.orders:
            stmt = self.sorts[name].apply(self.model, stmt)
        return stmt

    def _node_clause(self, node: QueryNode) -> ColumnElement[bool] | None:
        clauses = [self._dispatcher.clause(t.name, t.value) for t in node.terms if not t.is_blank]
        if node.branches:
            branch_clauses = [self._node_clause(branch) for branch in node.branches]
            # a branch without filters matches every row, so the group does too
            if all(c is not None for c in branch_clauses):
                clauses.append(or_(*branch_clauses))
        if not clauses:
            return None
        if len(clauses) == 1:
            return clauses[0]
        return and_(*clauses)
