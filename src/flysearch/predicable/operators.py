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
"""Operator tables: the fixed set of predicate operators for each type family.

Each :class:`Operator` knows its suffix (``cont``, ``gteq``, ...), how many
arguments it takes and how to build a boolean SQLAlchemy clause from a column.
Every user-supplied value reaches SQLAlchemy as a bound parameter; nothing is
rendered into SQL text.

Flag operators take one optional boolean (default ``True``); ``False`` inverts
the operator. ``present(False)`` is defined as the family's "absent" clause:
``blank(True)`` for strings, ``null(True)`` for numbers and dates, ``empty(True)``
for arrays.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from enum import Enum
from typing import Any

from sqlalchemy import ColumnElement, and_, extract, func, not_, or_, type_coerce
from sqlalchemy.dialects import postgresql

from flysearch.predicable.types import TypeFamily, is_date_only, is_time_only

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class Arity(Enum):
    """How a predicate consumes its argument(s)."""

    FLAG = "flag"  # optional boolean, inverts when False
    ONE = "one"
    TWO = "two"
    VARIADIC = "variadic"  # complex predicates; lists are splatted


@dataclass(frozen=True)
class Operator:
    """One operator of a family table.

    Attributes:
        suffix: Appended to the field name to form the predicate name.
        arity: Argument shape (see :class:`Arity`).
        build: ``build(column, *args) -> ColumnElement[bool]``.
    """

    suffix: str
    arity: Arity
    build: Callable[..., ColumnElement[bool]]


def as_flag(value: Any) -> bool:
    """Coerce a flag argument; query-string style ``"false"`` / ``"0"`` are false."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() not in ("false", "0", "no", "off", "")
    return bool(value)


def listify(values: Any) -> list[Any]:
    """Wrap a scalar in a list; strings and mappings count as scalars."""
    if isinstance(values, (str, bytes, dict)) or not isinstance(values, Iterable):
        return [values]
    return list(values)


# ---------------------------------------------------------------------------
# Shared builders
# ---------------------------------------------------------------------------


def _eq(col: Any, value: Any) -> ColumnElement[bool]:
    return col == value


def _not_eq(col: Any, value: Any) -> ColumnElement[bool]:
    return col != value


def _gt(col: Any, value: Any) -> ColumnElement[bool]:
    return col > value


def _gteq(col: Any, value: Any) -> ColumnElement[bool]:
    return col >= value


def _lt(col: Any, value: Any) -> ColumnElement[bool]:
    return col < value


def _lteq(col: Any, value: Any) -> ColumnElement[bool]:
    return col <= value


def _between(col: Any, low: Any, high: Any) -> ColumnElement[bool]:
    return col.between(low, high)


def _not_between(col: Any, low: Any, high: Any) -> ColumnElement[bool]:
    return and_(col.is_not(None), not_(col.between(low, high)))


def _in(col: Any, values: Any) -> ColumnElement[bool]:
    return col.in_(listify(values))


def _not_in(col: Any, values: Any) -> ColumnElement[bool]:
    return col.not_in(listify(values))


def _null(col: Any, flag: bool = True) -> ColumnElement[bool]:
    return col.is_(None) if flag else col.is_not(None)


def _not_null(col: Any, flag: bool = True) -> ColumnElement[bool]:
    return _null(col, not flag)


def _present(col: Any, flag: bool = True) -> ColumnElement[bool]:
    return _null(col, not flag)


_COMPARISONS = (
    Operator("gt", Arity.ONE, _gt),
    Operator("gteq", Arity.ONE, _gteq),
    Operator("lt", Arity.ONE, _lt),
    Operator("lteq", Arity.ONE, _lteq),
    Operator("between", Arity.TWO, _between),
    Operator("not_between", Arity.TWO, _not_between),
)

# ---------------------------------------------------------------------------
# String
# ---------------------------------------------------------------------------


def _string_present(col: Any, flag: bool = True) -> ColumnElement[bool]:
    if flag:
        return and_(col.is_not(None), col != "")
    return or_(col.is_(None), col == "")


def _string_blank(col: Any, flag: bool = True) -> ColumnElement[bool]:
    return _string_present(col, not flag)


def _cont(col: Any, value: Any) -> ColumnElement[bool]:
    return col.icontains(str(value), autoescape=True)


def _start(col: Any, value: Any) -> ColumnElement[bool]:
    return col.startswith(str(value), autoescape=True)


def _end(col: Any, value: Any) -> ColumnElement[bool]:
    return col.endswith(str(value), autoescape=True)


STRING_OPERATORS: tuple[Operator, ...] = (
    Operator("eq", Arity.ONE, _eq),
    Operator("not_eq", Arity.ONE, _not_eq),
    Operator("cont", Arity.ONE, _cont),
    Operator("start", Arity.ONE, _start),
    Operator("end", Arity.ONE, _end),
    Operator("present", Arity.FLAG, _string_present),
    Operator("blank", Arity.FLAG, _string_blank),
    Operator("null", Arity.FLAG, _null),
    Operator("not_null", Arity.FLAG, _not_null),
    Operator("in", Arity.ONE, _in),
    Operator("not_in", Arity.ONE, _not_in),
)

# ---------------------------------------------------------------------------
# Numeric
# ---------------------------------------------------------------------------

NUMERIC_OPERATORS: tuple[Operator, ...] = (
    Operator("eq", Arity.ONE, _eq),
    Operator("not_eq", Arity.ONE, _not_eq),
    *_COMPARISONS,
    Operator("in", Arity.ONE, _in),
    Operator("not_in", Arity.ONE, _not_in),
    Operator("present", Arity.FLAG, _present),
    Operator("null", Arity.FLAG, _null),
)

# ---------------------------------------------------------------------------
# Temporal
# ---------------------------------------------------------------------------


def _day_start(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def _today(now: datetime) -> tuple[datetime, datetime]:
    start = _day_start(now)
    return start, start + timedelta(days=1)


def _yesterday(now: datetime) -> tuple[datetime, datetime]:
    start = _day_start(now)
    return start - timedelta(days=1), start


def _this_week(now: datetime) -> tuple[datetime, datetime]:
    start = _day_start(now) - timedelta(days=now.weekday())
    return start, start + timedelta(days=7)


def _this_month(now: datetime) -> tuple[datetime, datetime]:
    start = _day_start(now).replace(day=1)
    return start, (start + timedelta(days=32)).replace(day=1)


def _this_year(now: datetime) -> tuple[datetime, datetime]:
    start = _day_start(now).replace(month=1, day=1)
    return start, start.replace(year=start.year + 1)


_CALENDAR_RANGES: tuple[tuple[str, Callable[[datetime], tuple[datetime, datetime]]], ...] = (
    ("today", _today),
    ("yesterday", _yesterday),
    ("this_week", _this_week),
    ("this_month", _this_month),
    ("this_year", _this_year),
)


TIME_OPERATORS: tuple[Operator, ...] = (
    Operator("eq", Arity.ONE, _eq),
    Operator("not_eq", Arity.ONE, _not_eq),
    *_COMPARISONS,
    Operator("present", Arity.FLAG, _present),
    Operator("null", Arity.FLAG, _null),
)


def _to_duration(value: Any) -> timedelta:
    if isinstance(value, timedelta):
        return value
    return timedelta(days=float(value))


def temporal_operators(column_type: Any, clock: Clock = utc_now) -> tuple[Operator, ...]:
    """Build the temporal table for one column.

    Calendar shortcuts and ``within`` read *clock* each time they are applied
    and compare against ``date`` bounds for DATE columns, ``datetime`` bounds
    otherwise. TIME columns hold no calendar date, so they only get
    comparisons, ranges and null checks.
    """
    if is_time_only(column_type):
        return TIME_OPERATORS
    date_only = is_date_only(column_type)

    def bound(value: datetime) -> date | datetime:
        return value.date() if date_only else value

    def calendar(range_fn: Callable[[datetime], tuple[datetime, datetime]]) -> Callable[..., ColumnElement[bool]]:
        def build(col: Any, flag: bool = True) -> ColumnElement[bool]:
            start, end = range_fn(clock())
            if flag:
                return and_(col >= bound(start), col < bound(end))
            return and_(col.is_not(None), or_(col < bound(start), col >= bound(end)))

        return build

    def within(col: Any, duration: Any) -> ColumnElement[bool]:
        return col >= bound(clock() - _to_duration(duration))

    def part(field: str) -> Callable[..., ColumnElement[bool]]:
        return lambda col, value: extract(field, col) == int(value)

    return (
        Operator("eq", Arity.ONE, _eq),
        Operator("not_eq", Arity.ONE, _not_eq),
        *_COMPARISONS,
        Operator("within", Arity.ONE, within),
        *(Operator(name, Arity.FLAG, calendar(range_fn)) for name, range_fn in _CALENDAR_RANGES),
        Operator("year", Arity.ONE, part("year")),
        Operator("month", Arity.ONE, part("month")),
        Operator("day", Arity.ONE, part("day")),
        Operator("present", Arity.FLAG, _present),
        Operator("null", Arity.FLAG, _null),
    )


# ---------------------------------------------------------------------------
# Boolean
# ---------------------------------------------------------------------------


def _is_true(col: Any, flag: bool = True) -> ColumnElement[bool]:
    if flag:
        return col.is_(True)
    return or_(col.is_(False), col.is_(None))


def _is_false(col: Any, flag: bool = True) -> ColumnElement[bool]:
    return _is_true(col, not flag)


BOOLEAN_OPERATORS: tuple[Operator, ...] = (
    Operator("eq", Arity.ONE, _eq),
    Operator("is_true", Arity.FLAG, _is_true),
    Operator("is_false", Arity.FLAG, _is_false),
    Operator("present", Arity.FLAG, _present),
    Operator("null", Arity.FLAG, _null),
)

# ---------------------------------------------------------------------------
# Array (PostgreSQL operators)
# ---------------------------------------------------------------------------


def _pg_array(col: Any) -> Any:
    if isinstance(col.type, postgresql.ARRAY):
        return col
    return type_coerce(col, postgresql.ARRAY(col.type.item_type))


def _array_contains(col: Any, value: Any) -> ColumnElement[bool]:
    return _pg_array(col).contains([value])


def _array_contains_all(col: Any, values: Any) -> ColumnElement[bool]:
    return _pg_array(col).contains(listify(values))


def _array_overlaps(col: Any, values: Any) -> ColumnElement[bool]:
    return _pg_array(col).overlap(listify(values))


def _array_empty(col: Any, flag: bool = True) -> ColumnElement[bool]:
    if flag:
        return func.coalesce(func.cardinality(col), 0) == 0
    return func.cardinality(col) > 0


def _array_present(col: Any, flag: bool = True) -> ColumnElement[bool]:
    return _array_empty(col, not flag)


ARRAY_OPERATORS: tuple[Operator, ...] = (
    Operator("contains", Arity.ONE, _array_contains),
    Operator("overlaps", Arity.ONE, _array_overlaps),
    Operator("contains_all", Arity.ONE, _array_contains_all),
    Operator("empty", Arity.FLAG, _array_empty),
    Operator("present", Arity.FLAG, _array_present),
)

# ---------------------------------------------------------------------------
# Document (PostgreSQL JSONB operators)
# ---------------------------------------------------------------------------


def _jsonb(col: Any) -> Any:
    if isinstance(col.type, postgresql.JSONB):
        return col
    return type_coerce(col, postgresql.JSONB)


def _keys(keys: Any) -> Any:
    return postgresql.array([str(k) for k in listify(keys)])


DOCUMENT_OPERATORS: tuple[Operator, ...] = (
    Operator("has_key", Arity.ONE, lambda col, key: _jsonb(col).has_key(str(key))),
    Operator("has_any_key", Arity.ONE, lambda col, keys: _jsonb(col).has_any(_keys(keys))),
    Operator("has_all_keys", Arity.ONE, lambda col, keys: _jsonb(col).has_all(_keys(keys))),
    Operator("contains", Arity.ONE, lambda col, fragment: _jsonb(col).contains(fragment)),
)

# ---------------------------------------------------------------------------
# Opaque (unknown storage types)
# ---------------------------------------------------------------------------

OPAQUE_OPERATORS: tuple[Operator, ...] = (
    Operator("eq", Arity.ONE, _eq),
    Operator("not_eq", Arity.ONE, _not_eq),
    Operator("null", Arity.FLAG, _null),
)

_STATIC_TABLES: dict[TypeFamily, tuple[Operator, ...]] = {
    TypeFamily.STRING: STRING_OPERATORS,
    TypeFamily.NUMERIC: NUMERIC_OPERATORS,
    TypeFamily.BOOLEAN: BOOLEAN_OPERATORS,
    TypeFamily.ARRAY: ARRAY_OPERATORS,
    TypeFamily.DOCUMENT: DOCUMENT_OPERATORS,
    TypeFamily.OPAQUE: OPAQUE_OPERATORS,
}


def operators_for(family: TypeFamily, column_type: Any = None, clock: Clock = utc_now) -> tuple[Operator, ...]:
    """Return the operator table for *family*."""
    if family is TypeFamily.TEMPORAL:
        return temporal_operators(column_type, clock)
    return _STATIC_TABLES[family]
