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
"""flysearch Predicable: type-aware filter predicates for SQLAlchemy models.

Declared fields are classified into a :class:`TypeFamily` and expanded into
named predicates (``title_cont``, ``view_count_between``, ...) held in an
immutable :class:`Predicates` mapping.
"""

from flysearch.predicable.dispatcher import PredicateDispatcher
from flysearch.predicable.operators import Arity, Operator, operators_for
from flysearch.predicable.registry import (
    FieldDeclaration,
    PredicateDefinition,
    PredicateRegistry,
    Predicates,
)
from flysearch.predicable.relation import Relation
from flysearch.predicable.types import TypeFamily, classify

__all__ = [
    "Arity",
    "FieldDeclaration",
    "Operator",
    "PredicateDefinition",
    "PredicateDispatcher",
    "PredicateRegistry",
    "Predicates",
    "Relation",
    "TypeFamily",
    "classify",
    "operators_for",
]
