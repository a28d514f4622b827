"""SQLAlchemy 2.0 ORM layer for catalog-spine.

Usage::

    from catalog_spine.core.orm import CatalogBase, create_catalog_engine, catalog_session_factory

    engine = create_catalog_engine("sqlite:///catalog.db")
    CatalogBase.metadata.create_all(engine)

    Session = catalog_session_factory(engine)
    with Session() as session:
        ...
"""

from catalog_spine.core.orm.base import CatalogBase, UnixTimestampMixin, unix_now
from catalog_spine.core.orm.session import (
    CatalogSession,
    catalog_session_factory,
    create_catalog_engine,
)
from catalog_spine.core.orm.tables import (
    CatalogDiagnosticTable,
    CatalogEntryTable,
    ReleaseTable,
    RepositoryTable,
)

__all__ = [
    # Base
    "CatalogBase",
    "UnixTimestampMixin",
    "unix_now",
    # Session
    "CatalogSession",
    "catalog_session_factory",
    "create_catalog_engine",
    # Tables
    "RepositoryTable",
    "ReleaseTable",
    "CatalogEntryTable",
    "CatalogDiagnosticTable",
]
