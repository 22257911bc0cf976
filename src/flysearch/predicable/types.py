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
"""Type classifier: maps a column's storage type to a predicate family."""

from __future__ import annotations

from enum import Enum
from typing import Any

from sqlalchemy import types as sqltypes


class TypeFamily(Enum):
    """Coarse classification of a storage type, driving which operators apply."""

    STRING = "string"
    NUMERIC = "numeric"
    TEMPORAL = "temporal"
    BOOLEAN = "boolean"
    ARRAY = "array"
    DOCUMENT = "document"
    OPAQUE = "opaque"


# Checked in order: ARRAY and JSON come first because their item/value types
# are arbitrary; Boolean before the numeric bases.
_FAMILY_BASES: tuple[tuple[tuple[type, ...], TypeFamily], ...] = (
    ((sqltypes.ARRAY,), TypeFamily.ARRAY),
    ((sqltypes.JSON,), TypeFamily.DOCUMENT),
    ((sqltypes.Boolean,), TypeFamily.BOOLEAN),
    ((sqltypes.String,), TypeFamily.STRING),
    ((sqltypes.Integer, sqltypes.Numeric, sqltypes.Float), TypeFamily.NUMERIC),
    ((sqltypes.DateTime, sqltypes.Date, sqltypes.Time), TypeFamily.TEMPORAL),
)


def _type_class(storage_type: Any) -> type:
    type_cls = storage_type if isinstance(storage_type, type) else type(storage_type)
    # Interval is a TypeDecorator over DateTime but holds durations.
    if issubclass(type_cls, sqltypes.TypeDecorator) and not issubclass(type_cls, sqltypes.Interval):
        impl = storage_type.impl if not isinstance(storage_type, type) else type_cls.impl
        return _type_class(impl)
    return type_cls


def classify(storage_type: Any) -> TypeFamily:
    """Classify a SQLAlchemy type (instance or class) into a :class:`TypeFamily`.

    Unknown types fall back to :attr:`TypeFamily.OPAQUE`, which still gets
    equality and null-check predicates.
    """
    type_cls = _type_class(storage_type)
    if issubclass(type_cls, sqltypes.Interval):
        return TypeFamily.OPAQUE
    for bases, family in _FAMILY_BASES:
        if issubclass(type_cls, bases):
            return family
    return TypeFamily.OPAQUE


def is_date_only(storage_type: Any) -> bool:
    """Whether a temporal type stores calendar dates without a time part."""
    type_cls = _type_class(storage_type)
    return issubclass(type_cls, sqltypes.Date) and not issubclass(type_cls, sqltypes.DateTime)


def is_time_only(storage_type: Any) -> bool:
    """Whether a temporal type stores a time of day without a calendar date."""
    return issubclass(_type_class(storage_type), sqltypes.Time)
