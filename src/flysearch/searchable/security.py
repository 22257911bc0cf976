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
"""Security policy enforcement for search requests."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

import structlog

from flysearch.kernel.exceptions import InvalidSecurityError
from flysearch.searchable.config import SecurityPolicy
from flysearch.searchable.query import QueryNode

logger = structlog.get_logger("flysearch.searchable.security")


def policy_name(policy: Any) -> str:
    """Normalize a policy identifier (``str`` or string-valued enum member)."""
    if isinstance(policy, Enum):
        return str(policy.value)
    return str(policy)


def _unscoped_branch(node: QueryNode, name: str, path: str) -> str | None:
    """Path of the first OR branch under *node* that does not filter by *name*."""
    if any(term.name == name and not term.is_blank for term in node.terms):
        return None
    if not node.branches:
        return path or "(top level)"
    for index, branch in enumerate(node.branches):
        found = _unscoped_branch(branch, name, f"{path}.or[{index}]" if path else f"or[{index}]")
        if found is not None:
            return found
    return None


class SecurityPolicyEvaluator:
    """Checks that a request supplies every predicate a policy requires.

    A required predicate counts as supplied when it has a non-blank value
    somewhere in the request. It must also constrain every row: a name that
    appears in only some branches of an OR group leaves the other branches
    unscoped, and is rejected.
    """

    def __init__(self, policies: Mapping[str, SecurityPolicy], *, model: type | None = None) -> None:
        self._policies = policies
        self._model = model

    def enforce(self, policy: Any, request: QueryNode) -> SecurityPolicy:
        """Validate *request* against *policy* and return the policy.

        Raises:
            InvalidSecurityError: If the policy is unknown, a required
                predicate is missing or blank, or a required predicate only
                scopes part of an OR group.
        """
        name = policy_name(policy)
        found = self._policies.get(name)
        if found is None:
            logger.warning("security_policy_unknown", model=self._model_name, policy=name)
            raise InvalidSecurityError(name, available=self._policies.keys(), model=self._model)

        supplied = request.supplied_names()
        missing = found.required - supplied
        if missing:
            logger.warning(
                "security_policy_violated",
                model=self._model_name,
                policy=name,
                missing=sorted(missing),
            )
            raise InvalidSecurityError(
                name,
                required=found.required,
                supplied=supplied,
                missing=missing,
                model=self._model,
            )

        unscoped = found.required - request.scoped_names()
        if unscoped:
            required_name = min(unscoped)
            branch = _unscoped_branch(request, required_name, "")
            logger.warning(
                "security_policy_bypass",
                model=self._model_name,
                policy=name,
                predicate=required_name,
                branch=branch,
            )
            raise InvalidSecurityError(
                name,
                required=found.required,
                supplied=supplied,
                missing=unscoped,
                reason=(
                    f"Security policy '{name}' requires '{required_name}' to filter every row, "
                    f"but OR branch {branch} does not filter by it. Add it at the top level "
                    f"or to every OR branch"
                ),
                model=self._model,
            )
        return found

    @property
    def _model_name(self) -> str | None:
        return self._model.__name__ if self._model is not None else None
