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
"""End-to-end search composition against SQLite via aiosqlite."""

from __future__ import annotations

from enum import Enum

import pytest
from sqlalchemy import Integer, String, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from flysearch.kernel.exceptions import (
    InvalidOrderError,
    InvalidPaginationError,
    InvalidPredicateError,
    InvalidSecurityError,
    QueryComplexityError,
    SearchableConfigurationError,
)
from flysearch.predicable.relation import Relation
from flysearch.searchable.builder import SearchableBuilder

# ---------------------------------------------------------------------------
# Test entity
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


class Article(Base):
    __tablename__ = "search_articles"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(200))
    status: Mapped[str | None] = mapped_column(String(20))
    view_count: Mapped[int | None] = mapped_column(Integer)


class ArticleKey(str, Enum):
    STATUS_EQ = "status_eq"


articles = (
    SearchableBuilder(Article)
    .predicates("title", "status", "view_count")
    .complex_predicate("popular", lambda root, views: root.view_count >= views)
    .sort("title", "view_count")
    .complex_sort("by_status_then_id", lambda root: [root.status.asc(), root.id.asc()])
    .default_order("sort_title_asc")
    .per_page(2)
    .max_per_page(10)
    .max_predicates(5)
    .max_or_conditions(4)
    .security("status_required", ["status_eq"])
    .build()
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    async with async_sessionmaker(engine, expire_on_commit=False)() as session:
        session.add_all(
            [
                Article(id=1, title="Ruby Guide", status="draft", view_count=10),
                Article(id=2, title="Rails Tips", status="published", view_count=100),
                Article(id=3, title="Python Intro", status=None, view_count=200),
                Article(id=4, title="Go Basics", status="published", view_count=None),
            ]
        )
        await session.commit()
        yield session


async def ids(session, predicates=None, **kwargs) -> list[int]:
    rows = await articles.search_all(session, predicates, **kwargs)
    return [row.id for row in rows]


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


class TestFiltering:
    async def test_equality_excludes_other_values_and_null(self, session):
        assert await ids(session, {"status_eq": "draft"}) == [1]

    async def test_between_is_inclusive_and_skips_null(self, session):
        assert await ids(session, {"view_count_between": [50, 150]}) == [2]

    async def test_or_group(self, session):
        request = {"or": [{"title_cont": "Ruby"}, {"title_cont": "Rails"}]}
        assert sorted(await ids(session, request)) == [1, 2]

    async def test_or_group_is_anded_with_top_level(self, session):
        request = {"status_eq": "published", "or": [{"title_cont": "Rails"}, {"view_count_gt": 150}]}
        assert await ids(session, request) == [2]

    async def test_nested_or(self, session):
        request = {"or": [{"status_eq": "draft"}, {"or": [{"view_count_gt": 150}, {"title_cont": "Go"}]}]}
        assert sorted(await ids(session, request)) == [1, 3, 4]

    async def test_blank_values_are_skipped(self, session):
        assert sorted(await ids(session, {"status_eq": "", "title_cont": None, "view_count_in": []})) == [1, 2, 3, 4]

    async def test_blank_or_branch_matches_everything(self, session):
        request = {"status_eq": "published", "or": [{"title_cont": "Rails"}, {"title_cont": ""}]}
        assert sorted(await ids(session, request)) == [2, 4]

    async def test_false_flag_is_not_blank(self, session):
        assert sorted(await ids(session, {"status_null": False})) == [1, 2, 4]

    async def test_enum_keys(self, session):
        assert await ids(session, {ArticleKey.STATUS_EQ: "draft"}) == [1]

    async def test_complex_predicate(self, session):
        assert sorted(await ids(session, {"popular": 100})) == [2, 3]

    async def test_no_predicates_returns_everything(self, session):
        assert await ids(session) == [4, 3, 2, 1]


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


class TestOrdering:
    async def test_default_order_applies_without_orders(self, session):
        assert await ids(session, {}) == [4, 3, 2, 1]

    async def test_explicit_order_replaces_default(self, session):
        assert await ids(session, {"view_count_gt": 0}, orders=["sort_view_count_desc"]) == [3, 2, 1]

    async def test_single_order_string(self, session):
        assert await ids(session, {"view_count_gt": 0}, orders="sort_view_count_asc") == [1, 2, 3]

    async def test_complex_sort(self, session):
        assert await ids(session, {"status_present": True}, orders="sort_by_status_then_id") == [1, 2, 4]

    def test_unknown_order(self):
        with pytest.raises(InvalidOrderError, match="sort_nope"):
            articles.search({}, orders=["sort_nope"])


# ---------------------------------------------------------------------------
# Security
# ---------------------------------------------------------------------------


class TestSecurity:
    def test_missing_required_predicate(self):
        with pytest.raises(InvalidSecurityError) as exc_info:
            articles.search({"title_cont": "Ruby"}, security="status_required")
        assert exc_info.value.missing == ["status_eq"]

    def test_unknown_policy(self):
        with pytest.raises(InvalidSecurityError, match="Unknown security policy 'admin'"):
            articles.search({"status_eq": "draft"}, security="admin")

    def test_or_branch_cannot_bypass_policy(self):
        request = {"or": [{"status_eq": "draft"}, {"title_cont": "Go"}]}
        with pytest.raises(InvalidSecurityError, match=r"OR branch or\[1\]"):
            articles.search(request, security="status_required")

    async def test_satisfied_policy(self, session):
        assert await ids(session, {"status_eq": "draft", "title_cont": "Ruby"}, security="status_required") == [1]

    async def test_policy_satisfied_inside_every_branch(self, session):
        request = {"or": [{"status_eq": "draft"}, {"status_eq": "published", "title_cont": "Go"}]}
        assert sorted(await ids(session, request, security="status_required")) == [1, 4]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    def test_unknown_predicate(self):
        with pytest.raises(InvalidPredicateError) as exc_info:
            articles.search({"status_equals": "draft"})
        assert "status_eq" in exc_info.value.suggestions

    def test_unknown_predicate_with_blank_value(self):
        with pytest.raises(InvalidPredicateError):
            articles.search({"nope_eq": ""})

    def test_unknown_predicate_inside_or(self):
        with pytest.raises(InvalidPredicateError):
            articles.search({"or": [{"status_eq": "draft"}, {"nope_eq": 1}]})

    def test_too_many_predicates(self):
        request = {
            "title_cont": "a",
            "title_start": "a",
            "title_end": "a",
            "status_eq": "a",
            "status_not_eq": "b",
            "view_count_gt": 1,
        }
        with pytest.raises(QueryComplexityError, match="max_predicates=5"):
            articles.search(request)

    def test_too_many_or_conditions(self):
        request = {"or": [{"view_count_eq": n} for n in range(5)]}
        with pytest.raises(QueryComplexityError, match="max_or_conditions=4"):
            articles.search(request)

    def test_nested_branches_count_towards_or_limit(self):
        request = {"or": [{"status_eq": "draft"}, {"or": [{"view_count_eq": n} for n in range(4)]}]}
        with pytest.raises(QueryComplexityError, match="6 exceeds max_or_conditions=4"):
            articles.search(request)

    def test_deep_or_nesting_is_rejected(self):
        request: dict = {"view_count_eq": 1}
        for _ in range(1_200):
            request = {"or": [request]}
        with pytest.raises(QueryComplexityError, match="max_or_conditions=4"):
            articles.search(request)

    def test_per_page_above_max(self):
        with pytest.raises(InvalidPaginationError) as exc_info:
            articles.search({}, pagination={"page": 1, "per_page": 999_999})
        assert exc_info.value.bound == {"min": 1, "max": 10}

    def test_unknown_pagination_key(self):
        with pytest.raises(SearchableConfigurationError, match="Unknown pagination keys: size"):
            articles.search({}, pagination={"size": 10})

    def test_malformed_or(self):
        with pytest.raises(SearchableConfigurationError):
            articles.search({"or": {"status_eq": "draft"}})

    def test_errors_are_raised_before_any_statement_is_built(self):
        # a valid predicate followed by an invalid order must not leak a filtered statement
        with pytest.raises(InvalidOrderError):
            articles.search({"status_eq": "draft"}, orders="sort_nope")
        stmt = articles.search({})
        assert stmt.whereclause is None


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


class TestPagination:
    def test_statement_is_limited(self):
        stmt = articles.search({}, pagination={"page": 3, "per_page": 4})
        assert stmt._limit == 4
        assert stmt._offset == 8

    def test_unpaginated_without_pagination(self):
        stmt = articles.search({})
        assert stmt._limit is None

    async def test_search_page(self, session):
        page = await articles.search_page(session, {}, pagination={"page": 2})
        assert [a.id for a in page.items] == [2, 1]
        assert page.total == 4
        assert page.page == 2
        assert page.per_page == 2
        assert page.total_pages == 2

    async def test_search_page_defaults_to_first_page(self, session):
        page = await articles.search_page(session, {"status_eq": "published"})
        assert [a.id for a in page.items] == [4, 2]
        assert page.total == 2

    async def test_string_parameters(self, session):
        page = await articles.search_page(session, {}, pagination={"page": "1", "per_page": "3"})
        assert [a.id for a in page.items] == [4, 3, 2]


# ---------------------------------------------------------------------------
# Relation and introspection
# ---------------------------------------------------------------------------


class TestRelation:
    async def test_chained_predicates(self, session):
        relation = articles.relation().status_eq("published").view_count_gt(50)
        assert isinstance(relation, Relation)
        result = await session.execute(relation.statement)
        assert [a.id for a in result.scalars()] == [2]

    async def test_wraps_existing_statement(self, session):
        relation = articles.relation(select(Article).where(Article.id > 2)).status_present(True)
        result = await session.execute(relation.order_by(Article.id).statement)
        assert [a.id for a in result.scalars()] == [4]


class TestIntrospection:
    def test_field_queries(self):
        assert articles.searchable_fields == ["title", "status", "view_count"]
        assert articles.searchable_field("status")
        assert not articles.searchable_field("id")
        assert "between" in articles.predicates_for("view_count")
        assert articles.predicates_for("id") == []
        assert "sort_title_asc_i" in articles.sorts_for("title")

    def test_metadata(self):
        meta = articles.metadata()
        assert meta["searchable_fields"] == ["title", "status", "view_count"]
        assert meta["sortable_fields"] == ["title", "view_count"]
        assert "cont" in meta["available_predicates"]["title"]
        assert meta["complex_predicates"] == ["popular"]
        assert meta["complex_sorts"] == ["sort_by_status_then_id"]
        assert meta["default_order"] == ["sort_title_asc"]
        assert meta["pagination"] == {"per_page": 2, "max_per_page": 10, "max_page": 10_000}
        assert meta["securities"] == {"status_required": ["status_eq"]}
