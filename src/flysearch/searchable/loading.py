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
"""Eager loading of relationships on search results.

``includes`` and ``preload`` load each relationship with one extra
``SELECT ... WHERE ... IN`` per path (``selectinload``); ``eager_load`` joins it
into the search statement (``joinedload``). Nested relationships are given as
dotted paths or nested mappings::

    articles.search({"status_eq": "published"}, includes=["author", "comments.author"])
    articles.search({}, eager_load={"comments": ["author"]})

Every path is checked against the mapped relationships before the statement
is built.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import joinedload, selectinload

from flysearch.kernel.exceptions import SearchableConfigurationError
from flysearch.searchable.query import is_blank

Path = tuple[str, ...]

STRATEGIES: dict[str, Callable[..., Any]] = {
    "includes": selectinload,
    "preload": selectinload,
    "eager_load": joinedload,
}


def _paths(spec: Any, prefix: Path, option: str, model: type) -> list[Path]:
    if is_blank(spec):
        return []
    if isinstance(spec, Enum):
        spec = spec.value
    if isinstance(spec, str):
        return [prefix + tuple(spec.split("."))]
    if isinstance(spec, Mapping):
        paths: list[Path] = []
        for key, nested in spec.items():
            for path in _paths(key, prefix, option, model):
                paths.append(path)
                paths.extend(_paths(nested, path, option, model))
        return paths
    if isinstance(spec, (list, tuple, set, frozenset)):
        return [path for item in spec for path in _paths(item, prefix, option, model)]
    raise SearchableConfigurationError(
        f"'{option}' must name relationships as strings, lists or mappings, got {type(spec).__name__}",
        model=model,
        expected="relationship name, dotted path, list or mapping",
        provided=type(spec).__name__,
    )


def _loader(model: type, path: Path, option: str) -> Any:
    strategy = STRATEGIES[option]
    current = model
    loader: Any = None
    for depth, name in enumerate(path):
        relationships = sa_inspect(current).relationships
        relationship = relationships.get(name)
        if relationship is None:
            available = sorted(relationships.keys())
            raise SearchableConfigurationError(
                f"Unknown association '{name}' on {current.__name__} in {option} path "
                f"'{'.'.join(path[: depth + 1])}'. "
                f"Available associations: {', '.join(available) or '(none)'}",
                model=model,
                expected=f"one of: {', '.join(available)}" if available else "a mapped relationship",
                provided=name,
            )
        attr = getattr(current, name)
        loader = strategy(attr) if loader is None else getattr(loader, strategy.__name__)(attr)
        current = relationship.mapper.class_
    return loader


def loader_options(
    model: type,
    *,
    includes: Any = None,
    preload: Any = None,
    eager_load: Any = None,
) -> tuple[Any, ...]:
    """Validate relationship paths and build the matching loader options.

    Raises:
        SearchableConfigurationError: A path names something that is not a
            relationship, or a value has an unsupported shape.
    """
    options: list[Any] = []
    for option, spec in (("includes", includes), ("preload", preload), ("eager_load", eager_load)):
        seen: set[Path] = set()
        for path in _paths(spec, (), option, model):
            if path in seen:
                continue
            seen.add(path)
            options.append(_loader(model, path, option))
    return tuple(options)
