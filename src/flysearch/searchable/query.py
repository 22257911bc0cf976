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
"""Search request parsing.

A predicate map such as::

    {"status_eq": "published", "or": [{"title_cont": "sql"}, {"view_count_gt": 100}]}

is parsed into a :class:`QueryNode` tree. Each node holds its own predicate
terms plus at most one OR group whose branches are nodes themselves, so
``or`` may nest to any depth.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sized
from dataclasses import dataclass
from enum import Enum
from typing import Any

from flysearch.kernel.exceptions import QueryComplexityError, SearchableConfigurationError

OR_KEY = "or"


def is_blank(value: Any) -> bool:
    """``None``, empty strings and empty collections are blank; ``False`` is not."""
    if value is None:
        return True
    if isinstance(value, Sized) and not isinstance(value, Enum):
        return len(value) == 0
    return False


@dataclass(frozen=True)
class PredicateTerm:
    """One ``name: value`` entry of a predicate map."""

    name: str
    value: Any

    @property
    def is_blank(self) -> bool:
        return is_blank(self.value)


@dataclass(frozen=True)
class QueryNode:
    """A predicate map: AND-ed terms plus an optional OR group of branches."""

    terms: tuple[PredicateTerm, ...] = ()
    branches: tuple[QueryNode, ...] = ()

    def walk(self) -> Iterator[QueryNode]:
        """Yield this node and every nested branch, depth first."""
        yield self
        for branch in self.branches:
            yield from branch.walk()

    def predicate_count(self) -> int:
        """Number of predicate terms in the whole tree."""
        return sum(len(node.terms) for node in self.walk())

    def names(self) -> Iterator[str]:
        """Every predicate name in the tree, blank values included."""
        for node in self.walk():
            for term in node.terms:
                yield term.name

    def supplied_names(self) -> frozenset[str]:
        """Names with a non-blank value anywhere in the tree."""
        return frozenset(term.name for node in self.walk() for term in node.terms if not term.is_blank)

    def scoped_names(self) -> frozenset[str]:
        """Names that constrain every row this node can match.

        A name scopes a node when the node itself supplies it, or when the
        node has an OR group and the name scopes every branch.
        """
        own = frozenset(term.name for term in self.terms if not term.is_blank)
        if not self.branches:
            return own
        shared = frozenset.intersection(*(branch.scoped_names() for branch in self.branches))
        return own | shared


def _key_name(key: Any, model: type | None) -> str:
    if isinstance(key, Enum) and isinstance(key.value, str):
        return key.value
    if isinstance(key, str):
        return key
    raise SearchableConfigurationError(
        f"Predicate names must be strings, got {type(key).__name__}: {key!r}",
        model=model,
        expected="str",
        provided=repr(key),
    )


def parse_request(
    predicates: Mapping[Any, Any] | None,
    *,
    model: type | None = None,
    max_depth: int | None = None,
) -> QueryNode:
    """Parse a predicate map into a :class:`QueryNode` tree.

    Every nesting level of ``or`` holds at least one branch, so callers pass
    ``max_or_conditions`` as *max_depth*; deeper input is rejected while
    parsing instead of exhausting the interpreter stack.

    Raises:
        SearchableConfigurationError: If the input is not a mapping, a key is
            not a string, or ``or`` is not a list of mappings.
        QueryComplexityError: If ``or`` nests deeper than *max_depth*.
    """
    return _parse(predicates, model, max_depth, 0)


def _parse(predicates: Mapping[Any, Any] | None, model: type | None, max_depth: int | None, depth: int) -> QueryNode:
    if predicates is None:
        return QueryNode()
    if not isinstance(predicates, Mapping):
        raise SearchableConfigurationError(
            f"Search predicates must be a mapping, got {type(predicates).__name__}",
            model=model,
            expected="mapping of predicate name to value",
            provided=type(predicates).__name__,
        )

    terms: list[PredicateTerm] = []
    branches: tuple[QueryNode, ...] = ()
    for raw_key, value in predicates.items():
        name = _key_name(raw_key, model)
        if name != OR_KEY:
            terms.append(PredicateTerm(name, value))
            continue
        if value is None:
            continue
        if not isinstance(value, (list, tuple)):
            raise SearchableConfigurationError(
                f"'{OR_KEY}' must be a list of predicate maps, got {type(value).__name__}",
                model=model,
                expected="list of mappings",
                provided=type(value).__name__,
            )
        for index, branch in enumerate(value):
            if not isinstance(branch, Mapping):
                raise SearchableConfigurationError(
                    f"'{OR_KEY}' branch {index} must be a mapping, got {type(branch).__name__}",
                    model=model,
                    expected="mapping of predicate name to value",
                    provided=type(branch).__name__,
                )
        if value and max_depth is not None and depth >= max_depth:
            raise QueryComplexityError("max_or_conditions", max_depth, depth + 1, model=model)
        branches = tuple(_parse(branch, model, max_depth, depth + 1) for branch in value)
    return QueryNode(tuple(terms), branches)
