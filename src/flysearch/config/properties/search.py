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
"""Search subsystem configuration properties."""

from __future__ import annotations

from dataclasses import dataclass

from flysearch.core.config import config_properties


@config_properties(prefix="flysearch.search")
@dataclass(frozen=True)
class SearchProperties:
    """Library-wide searchable defaults (flysearch.search.*).

    Each model's searchable setup starts from these values and may override
    any of them. ``max_page = None`` disables the page-number bound.
    """

    per_page: int = 25
    max_per_page: int = 100
    max_page: int | None = 10_000
    max_predicates: int = 100
    max_or_conditions: int = 50
