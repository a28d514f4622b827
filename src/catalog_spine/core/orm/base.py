"""Declarative base and mixins for all catalog-spine ORM models.

Uses SQLAlchemy 2.0 ``DeclarativeBase`` with a ``type_annotation_map``
that maps Python built-in types to portable SA column types.

Mixins
------
* **UnixTimestampMixin** - ``created_unix`` / ``updated_unix`` as integer
  seconds, written by the store so a no-op sync leaves them untouched.
"""

from __future__ import annotations

import time

from sqlalchemy import JSON, BigInteger, Boolean, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def unix_now() -> int:
    """Current time as whole unix seconds."""
    return int(time.time())


class CatalogBase(DeclarativeBase):
    """Shared declarative base for every catalog-spine table.

    ``type_annotation_map`` lets Mapped columns use plain Python types and
    automatically resolve to the right SA column type:

    * ``str``   → ``Text``
    * ``int``   → ``Integer``
    * ``bool``  → ``Boolean``
    * ``dict``  → ``JSON``    (stored as TEXT in SQLite, native JSON elsewhere)
    * ``list``  → ``JSON``
    """

    type_annotation_map = {
        str: Text,
        int: Integer,
        bool: Boolean,
        dict: JSON,
        list: JSON,
    }


class UnixTimestampMixin:
    """Mixin that adds ``created_unix`` and ``updated_unix`` columns.

    Values are set explicitly on insert and on real updates, never by the
    database, so that an unchanged re-sync produces no write at all.
    """

    created_unix: Mapped[int] = mapped_column(BigInteger, nullable=False, default=unix_now)
    updated_unix: Mapped[int] = mapped_column(BigInteger, nullable=False, default=unix_now)
