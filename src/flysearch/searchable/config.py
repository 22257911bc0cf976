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
"""Frozen per-model search configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True)
class SecurityPolicy:
    """A named set of predicates every search under this policy must supply."""

    name: str
    required: frozenset[str]


@dataclass(frozen=True)
class SearchableConfig:
    """Immutable search settings for one model.

    Attributes:
        default_order: Sort scope names applied when a search gives none.
        per_page: Page size used when pagination omits ``per_page``.
        max_per_page: Upper bound for ``per_page``.
        max_page: Upper bound for ``page``; ``None`` disables the check.
        max_predicates: Maximum predicates per search, OR branches included.
        max_or_conditions: Maximum branches per OR group.
        securities: Registered :class:`SecurityPolicy` objects by name.
    """

    default_order: tuple[str, ...] = ()
    per_page: int = 25
    max_per_page: int = 100
    max_page: int | None = 10_000
    max_predicates: int = 100
    max_or_conditions: int = 50
    securities: Mapping[str, SecurityPolicy] = field(default_factory=lambda: MappingProxyType({}))
