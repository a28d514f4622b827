"""
Stage classification.

A catalog entry's stage is a pure function of the ref it was extracted from:

==========================  ====================================  ===============
Ref kind                    Release flags                         Stage
==========================  ====================================  ===============
default branch              (no release)                          ``LATEST``
release                     ``is_draft``                          ``DRAFT``
release                     ``is_prerelease`` (not draft)         ``PRE_PRODUCTION``
release                     neither                               ``PRODUCTION``
tag without a release       --                                    not eligible
==========================  ====================================  ===============

Stages are ordered most mature first (``PRODUCTION`` = 1), so "at least as
mature as X" is ``stage <= X``.

Releases additionally have to carry a catalog version tag (``v`` followed by
a digit, or a leading four-digit year) to be eligible; see
:func:`is_catalog_version`.
"""

from __future__ import annotations

import re
from enum import IntEnum

from catalog_spine.core.errors import RequestValidationError

_CATALOG_VERSION = re.compile(r"^(v\d|\d{4})")


class Stage(IntEnum):
    """Maturity stage, most mature first."""

    PRODUCTION = 1
    PRE_PRODUCTION = 2
    DRAFT = 3
    LATEST = 4

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    Stage.PRODUCTION: "prod",
    Stage.PRE_PRODUCTION: "preprod",
    Stage.DRAFT: "draft",
    Stage.LATEST: "latest",
}

_BY_NAME: dict[str, Stage] = {
    **{label: stage for stage, label in _LABELS.items()},
    "production": Stage.PRODUCTION,
    "pre_production": Stage.PRE_PRODUCTION,
    "preproduction": Stage.PRE_PRODUCTION,
}


def classify_stage(has_release: bool, is_draft: bool = False, is_prerelease: bool = False) -> Stage:
    """Stage for a ref; total over every flag combination.

    Without a release the ref is the default branch. Tag-only refs never
    reach this function; callers exclude them first.
    """
    if not has_release:
        return Stage.LATEST
    if is_draft:
        return Stage.DRAFT
    if is_prerelease:
        return Stage.PRE_PRODUCTION
    return Stage.PRODUCTION


def parse_stage(value: str | Stage) -> Stage:
    """Stage from a short label (``prod``) or an enum name (``PreProduction``)."""
    if isinstance(value, Stage):
        return value
    key = value.strip().lower().replace("-", "_")
    try:
        return _BY_NAME[key]
    except KeyError:
        raise RequestValidationError(
            f"unknown stage {value!r}; expected one of {', '.join(_LABELS.values())}",
            field_name="stage",
            value=value,
        ) from None


def is_catalog_version(tag_name: str) -> bool:
    """``v1``, ``v12.3`` and ``2021``, ``2023-01`` are catalog versions."""
    return bool(_CATALOG_VERSION.match(tag_name))


__all__ = ["Stage", "classify_stage", "parse_stage", "is_catalog_version"]
