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
"""Unified exception hierarchy for flysearch.

Every error raised by the library inherits from :class:`FlySearchException`
and carries three structured payloads suitable for error trackers:

- ``tags``: filterable metadata, always including ``error_category`` and
  ``module`` (e.g. ``{"error_category": "invalid_predicate", "module": "searchable"}``)
- ``context``: high-level metadata such as the model class name
- ``extra``: detailed, error-specific data

Modules:
- Predicable: predicate declaration errors
- Sortable: sort declaration errors
- Searchable: query composition errors (predicates, orders, pagination, security)
"""

from __future__ import annotations

import difflib
from collections.abc import Iterable
from typing import Any, ClassVar

# =============================================================================
# Base Exception
# =============================================================================


class FlySearchException(Exception):
    """Base exception for all flysearch errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "SEARCHABLE_INVALID_PREDICATE").
        context: High-level key-value pairs (model class, policy name, ...).
        tags: Additional filterable tags, merged over the category/module pair.
        extra: Detailed error-specific data for debugging.
    """

    module: ClassVar[str] = "flysearch"
    category: ClassVar[str] = "error"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
        tags: dict | None = None,
        extra: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}
        self.tags: dict[str, str] = {"error_category": self.category, "module": self.module}
        if tags:
            self.tags.update({k: str(v) for k, v in tags.items() if v is not None})
        self.extra: dict = {k: v for k, v in (extra or {}).items() if v is not None}


def _model_context(model: type | None, **more: Any) -> dict[str, Any]:
    ctx: dict[str, Any] = {}
    if model is not None:
        ctx["model_class"] = model.__name__
    ctx.update({k: v for k, v in more.items() if v is not None})
    return ctx


def _join(names: Iterable[Any]) -> str:
    return ", ".join(str(n) for n in names)


class ConfigurationException(FlySearchException):
    """Invalid declarative setup, or a request the configuration forbids."""

    category = "configuration"

    def __init__(
        self,
        reason: str,
        *,
        model: type | None = None,
        expected: Any = None,
        provided: Any = None,
    ) -> None:
        self.reason = reason
        self.expected = expected
        self.provided = provided
        super().__init__(
            reason,
            code=f"{self.module.upper()}_CONFIGURATION",
            context=_model_context(model),
            extra={"reason": reason, "expected": expected, "provided": provided},
        )


# =============================================================================
# Predicable
# =============================================================================


class PredicableError(FlySearchException):
    """Base class for predicate declaration errors."""

    module = "predicable"


class PredicableConfigurationError(PredicableError, ConfigurationException):
    """A predicate declaration is invalid (unknown column, duplicate name, ...)."""


# =============================================================================
# Sortable
# =============================================================================


class SortableError(FlySearchException):
    """Base class for sort declaration errors."""

    module = "sortable"


class SortableConfigurationError(SortableError, ConfigurationException):
    """A sort declaration is invalid."""


# =============================================================================
# Searchable
# =============================================================================


class SearchableError(FlySearchException):
    """Base class for query composition errors."""

    module = "searchable"


class SearchableConfigurationError(SearchableError, ConfigurationException):
    """Invalid searchable setup, or a malformed search request."""


class QueryComplexityError(SearchableConfigurationError):
    """A search request exceeds the configured predicate or OR-branch limits."""

    category = "query_complexity"

    def __init__(self, limit_name: str, limit: int, actual: int, *, model: type | None = None) -> None:
        self.limit_name = limit_name
        self.limit = limit
        self.actual = actual
        super().__init__(
            f"Query too complex: {actual} exceeds {limit_name}={limit}. "
            f"Configure {limit_name} on the searchable model to change this limit.",
            model=model,
            expected=f"at most {limit}",
            provided=actual,
        )


# Configuration and complexity failures of a search share one catchable base.
ConfigurationError = SearchableConfigurationError


class InvalidPredicateError(SearchableError):
    """Raised when a search references a predicate that was never declared."""

    category = "invalid_predicate"

    def __init__(
        self,
        predicate: str,
        available: Iterable[str],
        *,
        value: Any = None,
        model: type | None = None,
    ) -> None:
        self.predicate = predicate
        self.value = value
        self.available: list[str] = sorted(available)
        self.suggestions: list[str] = suggest(predicate, self.available)
        owner = f" for {model.__name__}" if model is not None else ""
        message = f"Invalid predicate '{predicate}'{owner}."
        if self.suggestions:
            message += f" Did you mean one of: {_join(self.suggestions)}?"
        message += f" Available predicates: {_join(self.available) or '(none)'}"
        super().__init__(
            message,
            code="SEARCHABLE_INVALID_PREDICATE",
            context=_model_context(model),
            tags={"predicate": predicate},
            extra={"predicate": predicate, "value": value, "available_predicates": self.available},
        )


class InvalidOrderError(SearchableError):
    """Raised when a search requests an order scope that does not exist."""

    category = "invalid_order"

    def __init__(self, order: str, available: Iterable[str] = (), *, model: type | None = None) -> None:
        self.order = order
        self.available: list[str] = sorted(available)
        owner = f" for {model.__name__}" if model is not None else ""
        message = f"Invalid order '{order}'{owner}."
        close = difflib.get_close_matches(order, self.available, n=3)
        if close:
            message += f" Did you mean one of: {_join(close)}?"
        message += f" Available orders: {_join(self.available) or '(none)'}"
        super().__init__(
            message,
            code="SEARCHABLE_INVALID_ORDER",
            context=_model_context(model),
            tags={"order": order},
            extra={"order": order, "available_orders": self.available},
        )


class InvalidPaginationError(SearchableError):
    """Raised when page or per_page is non-positive, malformed, or above its bound."""

    category = "invalid_pagination"

    def __init__(
        self,
        parameter: str,
        value: Any,
        bound: dict[str, int],
        reason: str,
        *,
        model: type | None = None,
    ) -> None:
        self.parameter = parameter
        self.value = value
        self.bound = dict(bound)
        self.reason = reason
        super().__init__(
            f"Invalid pagination: {parameter}={value!r}. {reason}",
            code="SEARCHABLE_INVALID_PAGINATION",
            context=_model_context(model),
            tags={"parameter": parameter},
            extra={"parameter": parameter, "value": value, "valid_range": self.bound, "reason": reason},
        )


class InvalidSecurityError(SearchableError):
    """Raised when a security policy is unknown or its required predicates are missing."""

    category = "invalid_security"

    def __init__(
        self,
        policy: str,
        *,
        required: Iterable[str] = (),
        supplied: Iterable[str] = (),
        missing: Iterable[str] = (),
        available: Iterable[str] | None = None,
        reason: str | None = None,
        model: type | None = None,
    ) -> None:
        self.policy = policy
        self.required: list[str] = sorted(required)
        self.supplied: list[str] = sorted(supplied)
        self.missing: list[str] = sorted(missing)
        self.available: list[str] | None = sorted(available) if available is not None else None
        if reason is None:
            if self.available is not None:
                reason = f"Unknown security policy '{policy}'. Available policies: {_join(self.available) or '(none)'}"
            else:
                reason = (
                    f"Security policy '{policy}' requires predicates: {_join(self.required)}. "
                    f"You must also filter by: {_join(self.missing)}"
                )
        self.reason = reason
        super().__init__(
            reason,
            code="SEARCHABLE_INVALID_SECURITY",
            context=_model_context(model, policy=policy),
            tags={"policy": policy},
            extra={
                "policy": policy,
                "required": self.required,
                "supplied": self.supplied,
                "missing": self.missing,
                "available_policies": self.available,
            },
        )


# =============================================================================
# Helpers
# =============================================================================


def suggest(name: str, available: Iterable[str], limit: int = 5) -> list[str]:
    """Return valid names that share *name*'s field prefix, then close matches."""
    candidates = list(available)
    prefixed: list[str] = []
    head = name
    while "_" in head and not prefixed:
        head = head.rsplit("_", 1)[0]
        prefixed = [c for c in candidates if c.startswith(head + "_")]
    close = [c for c in difflib.get_close_matches(name, candidates, n=limit) if c not in prefixed]
    return (sorted(prefixed) + close)[:limit] if prefixed else close
