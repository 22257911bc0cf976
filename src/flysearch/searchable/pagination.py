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
"""Strict page / per_page validation. Values are never clamped."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select

from flysearch.kernel.exceptions import InvalidPaginationError

_DIGITS = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class PageRequest:
    """A validated page request (1-based)."""

    page: int
    per_page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        return self.per_page

    def apply(self, stmt: Select[Any]) -> Select[Any]:
        return stmt.limit(self.limit).offset(self.offset)


class PaginationValidator:
    """Validates pagination input against configured bounds."""

    def __init__(
        self,
        per_page: int,
        max_per_page: int,
        max_page: int | None = None,
        *,
        model: type | None = None,
    ) -> None:
        self.per_page = per_page
        self.max_per_page = max_per_page
        self.max_page = max_page
        self._model = model

    def validate(self, page: Any = None, per_page: Any = None) -> PageRequest:
        """Return a :class:`PageRequest` or raise :class:`InvalidPaginationError`.

        ``page`` defaults to 1 and ``per_page`` to the configured default.
        Integers and decimal digit strings are accepted.
        """
        page_bound: dict[str, int] = {"min": 1}
        if self.max_page is not None:
            page_bound["max"] = self.max_page
        per_page_bound = {"min": 1, "max": self.max_per_page}

        page_number = self._integer("page", 1 if page is None else page, page_bound)
        size = self._integer("per_page", self.per_page if per_page is None else per_page, per_page_bound)
        return PageRequest(page=page_number, per_page=size)

    def _integer(self, parameter: str, value: Any, bound: dict[str, int]) -> int:
        if isinstance(value, bool):
            number = None
        elif isinstance(value, int):
            number = value
        elif isinstance(value, str) and _DIGITS.fullmatch(value.strip()):
            number = int(value.strip())
        else:
            number = None
        if number is None:
            raise InvalidPaginationError(
                parameter, value, bound, f"{parameter} must be an integer", model=self._model
            )
        if number < bound["min"]:
            raise InvalidPaginationError(
                parameter, value, bound, f"{parameter} must be >= {bound['min']}", model=self._model
            )
        if "max" in bound and number > bound["max"]:
            raise InvalidPaginationError(
                parameter, value, bound, f"{parameter} must be <= {bound['max']}", model=self._model
            )
        return number
