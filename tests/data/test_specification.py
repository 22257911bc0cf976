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
"""Tests for Specification: composable, side-effect-free WHERE builders."""

from __future__ import annotations

import pytest
from sqlalchemy import String, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from flysearch.data.relational.specification import Specification

# ---------------------------------------------------------------------------
# Test entity
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "spec_users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    role: Mapped[str] = mapped_column(String(50), default="user")
    active: Mapped[bool] = mapped_column(default=True)


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
        yield session


@pytest.fixture
async def seeded_session(session: AsyncSession) -> AsyncSession:
    session.add_all(
        [
            User(name="Alice", role="admin", active=True),
            User(name="Bob", role="user", active=True),
            User(name="Charlie", role="admin", active=False),
            User(name="Diana", role="user", active=False),
        ]
    )
    await session.flush()
    return session


async def _names(session: AsyncSession, spec: Specification[User]) -> list[str]:
    """Apply *spec* and return the sorted names of matching users."""
    result = await session.execute(spec.to_predicate(User, select(User)))
    return sorted(u.name for u in result.scalars().all())


admin = Specification.of(lambda root: root.role == "admin")
active = Specification.of(lambda root: root.active.is_(True))


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestSpecificationSingle:
    @pytest.mark.asyncio
    async def test_clause_spec(self, seeded_session: AsyncSession):
        assert await _names(seeded_session, admin) == ["Alice", "Charlie"]

    @pytest.mark.asyncio
    async def test_statement_spec(self, seeded_session: AsyncSession):
        spec: Specification[User] = Specification(lambda root, q: q.where(root.name == "Bob"))
        assert await _names(seeded_session, spec) == ["Bob"]
        assert spec.to_clause(User) is None

    def test_does_not_mutate_base_statement(self):
        base = select(User)
        admin.to_predicate(User, base)
        assert base.whereclause is None


class TestSpecificationCombinators:
    @pytest.mark.asyncio
    async def test_and(self, seeded_session: AsyncSession):
        assert await _names(seeded_session, admin & active) == ["Alice"]

    @pytest.mark.asyncio
    async def test_or(self, seeded_session: AsyncSession):
        assert await _names(seeded_session, admin | active) == ["Alice", "Bob", "Charlie"]

    @pytest.mark.asyncio
    async def test_not(self, seeded_session: AsyncSession):
        assert await _names(seeded_session, ~admin) == ["Bob", "Diana"]

    @pytest.mark.asyncio
    async def test_complex_composition(self, seeded_session: AsyncSession):
        diana = Specification.of(lambda root: root.name == "Diana")
        assert await _names(seeded_session, (admin & active) | diana) == ["Alice", "Diana"]

    @pytest.mark.asyncio
    async def test_or_of_statement_specs(self, seeded_session: AsyncSession):
        bob: Specification[User] = Specification(lambda root, q: q.where(root.name == "Bob"))
        assert await _names(seeded_session, bob | admin) == ["Alice", "Bob", "Charlie"]

    def test_clause_backed_combinations_keep_clause(self):
        assert (admin & active).to_clause(User) is not None
        assert (admin | active).to_clause(User) is not None
        assert (~admin).to_clause(User) is not None


class TestUnfilteredSpecification:
    @pytest.mark.asyncio
    async def test_unfiltered_side_of_or_matches_everything(self, seeded_session: AsyncSession):
        everything: Specification[User] = Specification(lambda root, q: q)
        assert await _names(seeded_session, everything | admin) == ["Alice", "Bob", "Charlie", "Diana"]

    @pytest.mark.asyncio
    async def test_not_of_unfiltered_spec_returns_all(self, seeded_session: AsyncSession):
        everything: Specification[User] = Specification(lambda root, q: q)
        assert await _names(seeded_session, ~everything) == ["Alice", "Bob", "Charlie", "Diana"]
