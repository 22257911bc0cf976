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
"""Tests for SearchableBuilder, the @searchable decorator and frozen configuration."""

from __future__ import annotations

import dataclasses
from datetime import datetime

import pytest
from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from flysearch.config.properties.search import SearchProperties
from flysearch.core.config import Config
from flysearch.kernel.exceptions import PredicableConfigurationError, SearchableConfigurationError
from flysearch.searchable.builder import SearchableBuilder, searchable, searchable_for
from flysearch.searchable.composer import Searchable


class Base(DeclarativeBase):
    pass


class Article(Base):
    __tablename__ = "builder_articles"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(200))
    status: Mapped[str | None] = mapped_column(String(20))
    view_count: Mapped[int | None] = mapped_column(Integer)
    published_at: Mapped[datetime | None] = mapped_column(DateTime)


@searchable(
    predicates=("title", "status"),
    sorts=("title",),
    default_order=("sort_title_asc",),
    per_page=10,
    max_per_page=50,
    securities={"status_required": ["status_eq"]},
)
class Note(Base):
    __tablename__ = "builder_notes"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(200))
    status: Mapped[str | None] = mapped_column(String(20))


def _builder() -> SearchableBuilder:
    return SearchableBuilder(Article).predicates("title", "status", "view_count").sort("title", "view_count")


class TestBuild:
    def test_defaults_come_from_properties(self):
        config = _builder().build().config
        assert (config.per_page, config.max_per_page, config.max_page) == (25, 100, 10_000)
        assert (config.max_predicates, config.max_or_conditions) == (100, 50)
        assert config.default_order == ()

    def test_overrides(self):
        searchable_ = (
            _builder()
            .per_page(5)
            .max_per_page(20)
            .max_page(None)
            .max_predicates(3)
            .max_or_conditions(2)
            .default_order("sort_view_count_desc", "sort_title_asc")
            .security("status_required", ["status_eq"])
            .build()
        )
        config = searchable_.config
        assert (config.per_page, config.max_per_page, config.max_page) == (5, 20, None)
        assert (config.max_predicates, config.max_or_conditions) == (3, 2)
        assert config.default_order == ("sort_view_count_desc", "sort_title_asc")
        assert config.securities["status_required"].required == frozenset({"status_eq"})

    def test_default_order_accepts_list(self):
        config = _builder().default_order(["sort_title_desc"]).build().config
        assert config.default_order == ("sort_title_desc",)

    def test_custom_properties(self):
        props = SearchProperties(per_page=10, max_per_page=30)
        assert SearchableBuilder(Article, props).build().config.max_per_page == 30

    def test_from_config(self, monkeypatch):
        monkeypatch.setenv("FLYSEARCH_SEARCH_PER_PAGE", "12")
        config = Config({"flysearch": {"search": {"max_per_page": 40}}})
        built = SearchableBuilder.from_config(Article, config).build().config
        assert (built.per_page, built.max_per_page) == (12, 40)

    def test_complex_declarations(self):
        searchable_ = (
            _builder()
            .complex_predicate("popular", lambda root, views: root.view_count >= views)
            .complex_sort("by_views", lambda root: root.view_count.desc())
            .build()
        )
        assert "popular" in searchable_.predicate_names
        assert "sort_by_views" in searchable_.sorts


class TestBuildErrors:
    def test_security_without_predicates(self):
        with pytest.raises(SearchableConfigurationError, match="requires predicates"):
            _builder().security("status_required", None)

    def test_security_with_empty_list(self):
        with pytest.raises(SearchableConfigurationError, match="at least one required predicate"):
            _builder().security("status_required", [])

    def test_security_with_undeclared_predicate(self):
        with pytest.raises(SearchableConfigurationError, match="undeclared predicates: tenant_id_eq"):
            _builder().security("tenant", ["tenant_id_eq"]).build()

    def test_unknown_default_order(self):
        with pytest.raises(SearchableConfigurationError, match="unknown sort scopes: sort_nope"):
            _builder().default_order("sort_nope").build()

    def test_per_page_above_max(self):
        with pytest.raises(SearchableConfigurationError, match="cannot exceed max_per_page"):
            _builder().per_page(200).build()

    @pytest.mark.parametrize("bad", [0, -1, True, 2.5, "10", None])
    def test_limits_must_be_positive_integers(self, bad):
        with pytest.raises(SearchableConfigurationError, match="positive integer"):
            _builder().max_per_page(bad)

    def test_unknown_field(self):
        with pytest.raises(PredicableConfigurationError):
            SearchableBuilder(Article).predicates("nope")

    def test_builder_is_single_use(self):
        builder = _builder()
        builder.build()
        with pytest.raises(SearchableConfigurationError, match="already been built"):
            builder.per_page(5)
        with pytest.raises(SearchableConfigurationError, match="already been built"):
            builder.build()


class TestFrozenConfiguration:
    def test_config_is_frozen(self):
        config = _builder().build().config
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.max_per_page = 1_000_000  # type: ignore[misc]

    def test_securities_are_read_only(self):
        config = _builder().security("status_required", ["status_eq"]).build().config
        with pytest.raises(TypeError):
            config.securities["open"] = config.securities["status_required"]  # type: ignore[index]

    def test_policy_is_frozen(self):
        policy = _builder().security("status_required", ["status_eq"]).build().config.securities["status_required"]
        with pytest.raises(dataclasses.FrozenInstanceError):
            policy.required = frozenset()  # type: ignore[misc]

    def test_searchable_attributes_are_read_only(self):
        searchable_ = _builder().build()
        other = _builder().per_page(5).build().config
        with pytest.raises(AttributeError):
            searchable_.config = other  # type: ignore[misc]
        with pytest.raises(AttributeError):
            searchable_.model = Note  # type: ignore[misc]
        assert searchable_.config.per_page == 25


class TestDecorator:
    def test_attaches_searchable(self):
        found = searchable_for(Note)
        assert isinstance(found, Searchable)
        assert found.model is Note
        assert found.config.per_page == 10
        assert found.config.default_order == ("sort_title_asc",)
        assert found.searchable_field("title")

    def test_undecorated_model(self):
        with pytest.raises(SearchableConfigurationError, match="not searchable"):
            searchable_for(Article)
