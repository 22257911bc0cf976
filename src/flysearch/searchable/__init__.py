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
"""flysearch Searchable: one validated entry point for composed searches."""

from flysearch.searchable.builder import SearchableBuilder, searchable, searchable_for
from flysearch.searchable.composer import Searchable
from flysearch.searchable.config import SearchableConfig, SecurityPolicy
from flysearch.searchable.loading import loader_options
from flysearch.searchable.pagination import PageRequest, PaginationValidator
from flysearch.searchable.query import PredicateTerm, QueryNode, is_blank, parse_request
from flysearch.searchable.security import SecurityPolicyEvaluator

__all__ = [
    "PageRequest",
    "PaginationValidator",
    "PredicateTerm",
    "QueryNode",
    "Searchable",
    "SearchableBuilder",
    "SearchableConfig",
    "SecurityPolicy",
    "SecurityPolicyEvaluator",
    "is_blank",
    "loader_options",
    "parse_request",
    "searchable",
    "searchable_for",
]
