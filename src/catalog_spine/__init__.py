"""catalog-spine: staged, searchable catalog entries for Resource Container repositories.

Pipeline::

    EventRouter ──► CatalogSynchronizer ──► ManifestReader
                                        ──► SchemaValidator
                                        ──► FieldExtractor
                                        ──► classify_stage
                                        ──► CatalogStore
    CatalogSearch ─────────────────────────► CatalogStore (read only)
"""

__version__ = "0.4.0"
