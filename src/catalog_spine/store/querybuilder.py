"""
Reusable SQLAlchemy condition builders.

The one operation with real subtlety is :func:`select_latest_per_group`,
the group-wise maximum used by catalog search to keep only the newest entry
per repository. It is a correlated ``NOT EXISTS``: a row survives when no
other row of the same group, inside the same scope, has a greater order key
(or an equal order key and a greater tie-breaker). The result keeps every
column of the surviving row, unlike ``GROUP BY``, and yields exactly one
row per group even when order keys tie.

Example::

    latest = select_latest_per_group(
        CatalogEntryTable,
        group_keys=("repo_id",),
        order_key="release_date_unix",
        scope=lambda t: [t.stage <= Stage.PRODUCTION],
    )
    stmt = select(CatalogEntryTable).where(latest)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any

from sqlalchemy import ColumnElement, Text, and_, cast, exists, func, or_, true
from sqlalchemy.orm import aliased

ScopeFn = Callable[[Any], Iterable[ColumnElement[bool]]]


def select_latest_per_group(
    entity: Any,
    group_keys: Sequence[str],
    order_key: str,
    *,
    tie_breaker: str = "id",
    scope: ScopeFn | None = None,
) -> ColumnElement[bool]:
    """Condition keeping the row with the greatest *order_key* per group.

    Args:
        entity: mapped class queried by the outer statement
        group_keys: attribute names defining a group
        order_key: attribute whose maximum wins
        tie_breaker: attribute deciding between equal order keys (greater wins)
        scope: callable returning extra conditions for a given alias; it is
            applied to the competing rows and must also be applied by the
            caller to the outer statement
    """
    if not group_keys:
        raise ValueError("select_latest_per_group needs at least one group key")
    other = aliased(entity)
    same_group = [getattr(other, key) == getattr(entity, key) for key in group_keys]
    newer = or_(
        getattr(other, order_key) > getattr(entity, order_key),
        and_(
            getattr(other, order_key) == getattr(entity, order_key),
            getattr(other, tie_breaker) > getattr(entity, tie_breaker),
        ),
    )
    conditions = [*same_group, newer]
    if scope is not None:
        conditions.extend(scope(other))
    return ~exists().where(and_(*conditions))


def escape_like(value: str) -> str:
    """Escape ``%``, ``_`` and the escape character itself for LIKE."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def iequals(column: Any, value: str) -> ColumnElement[bool]:
    """Case-insensitive equality."""
    return func.lower(column) == value.lower()


def icontains(column: Any, value: str) -> ColumnElement[bool]:
    """Case-insensitive substring match."""
    return func.lower(column).like(f"%{escape_like(value.lower())}%", escape="\\")


def istartswith(column: Any, value: str) -> ColumnElement[bool]:
    return func.lower(column).like(f"{escape_like(value.lower())}%", escape="\\")


def json_array_contains(column: Any, value: str) -> ColumnElement[bool]:
    """True when a JSON array of strings holds *value* (case-insensitive)."""
    encoded = '"' + escape_like(value.lower().replace('"', '\\"')) + '"'
    return func.lower(cast(column, Text)).like(f"%{encoded}%", escape="\\")


def json_text_contains(column: Any, value: str) -> ColumnElement[bool]:
    """Substring match over the serialized JSON document."""
    return func.lower(cast(column, Text)).like(f"%{escape_like(value.lower())}%", escape="\\")


def any_of(conditions: Iterable[ColumnElement[bool]]) -> ColumnElement[bool] | None:
    """OR of *conditions*, or ``None`` when there are none."""
    items = list(conditions)
    if not items:
        return None
    return items[0] if len(items) == 1 else or_(*items)


def all_of(conditions: Iterable[ColumnElement[bool] | None]) -> ColumnElement[bool]:
    """AND of the non-``None`` *conditions* (``true()`` when empty)."""
    items = [c for c in conditions if c is not None]
    if not items:
        return true()
    return items[0] if len(items) == 1 else and_(*items)


__all__ = [
    "select_latest_per_group",
    "escape_like",
    "iequals",
    "icontains",
    "istartswith",
    "json_array_contains",
    "json_text_contains",
    "any_of",
    "all_of",
]
