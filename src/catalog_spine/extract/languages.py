"""
Language lookup table.

Rows follow the Door43 ``langnames.json`` export: ``lc`` (language code),
``ln`` (native name), ``ld`` (direction) and ``gw`` (gateway language
flag). A copy is bundled with the package; ``CATALOG_LANGNAMES_PATH`` points
at a fuller export.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from catalog_spine.core.errors import ConfigError
from catalog_spine.core.logging import get_logger

logger = get_logger(__name__)

BUNDLED_LANGNAMES = Path(__file__).parent / "data" / "langnames.json"


class LanguageTable:
    """Language facts keyed by lower-cased language code."""

    def __init__(self, rows: list[dict[str, Any]]):
        self._rows: dict[str, dict[str, Any]] = {}
        for row in rows:
            code = row.get("lc")
            if isinstance(code, str) and code:
                self._rows[code.lower()] = row

    @classmethod
    def load(cls, path: Path | None = None) -> LanguageTable:
        source = Path(path) if path else BUNDLED_LANGNAMES
        try:
            rows = json.loads(source.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigError(f"unable to read language table {source}: {e}", cause=e).with_context(path=str(source))
        if not isinstance(rows, list):
            raise ConfigError(f"language table {source} must be a JSON array").with_context(path=str(source))
        logger.debug("language_table_loaded", path=str(source), languages=len(rows))
        return cls(rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, code: str) -> bool:
        return code.lower() in self._rows

    def title(self, code: str) -> str:
        value = self._rows.get(code.lower(), {}).get("ln")
        return value if isinstance(value, str) else ""

    def direction(self, code: str) -> str:
        value = self._rows.get(code.lower(), {}).get("ld")
        return value if value in ("ltr", "rtl") else ""

    def is_gateway(self, code: str) -> bool:
        return self._rows.get(code.lower(), {}).get("gw") is True
