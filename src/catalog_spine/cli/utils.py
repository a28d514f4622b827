"""
CLI utility helpers: container construction and output formatting.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from catalog_spine.container import CatalogContainer
from catalog_spine.core.errors import CatalogError
from catalog_spine.core.settings import get_settings
from catalog_spine.models import CatalogEntry, Repository

console = Console()
err_console = Console(stderr=True)


# ── Container helper ─────────────────────────────────────────────────────


@contextmanager
def open_container(database: str | None = None) -> Iterator[CatalogContainer]:
    """Container for one command; ``--database`` overrides ``CATALOG_DATABASE_URL``."""
    settings = get_settings()
    if database:
        settings = settings.model_copy(update={"database_url": database})
    with CatalogContainer(settings) as container:
        try:
            yield container
        except CatalogError as e:
            fail(e.message, code=e.category.value)


def resolve_repository(container: CatalogContainer, full_name: str) -> Repository:
    owner, sep, name = full_name.partition("/")
    if not sep or not owner or not name:
        fail(f"expected <owner>/<repo>, got {full_name!r}", code="USAGE")
    repo = container.hosting.get_repository_by_name(owner, name)
    if repo is None:
        fail(f"repository {full_name} not found", code="NOT_FOUND")
    return repo


# ── Output helpers ───────────────────────────────────────────────────────


def fail(message: str, *, code: str = "ERROR") -> Any:
    err_console.print(f"[bold red]Error[/bold red] ({code}): {message}")
    raise typer.Exit(code=1)


def print_json(payload: Any) -> None:
    # Plain stdout so that output stays machine-readable without a tty
    typer.echo(json.dumps(payload, default=str, indent=2))


def entry_to_dict(entry: CatalogEntry, repo: Repository | None = None) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": entry.id,
        "repo_id": entry.repo_id,
        "release_id": entry.release_id,
        "ref": entry.ref,
        "ref_type": entry.ref_type,
        "stage": entry.stage.label,
        "metadata_type": entry.metadata_type,
        "metadata_version": entry.metadata_version,
        "language": entry.language,
        "subject": entry.subject,
        "title": entry.title,
        "abbreviation": entry.abbreviation,
        "flavor_type": entry.flavor_type,
        "flavor": entry.flavor,
        "checking_level": entry.checking_level,
        "content_format": entry.content_format,
        "books": entry.books,
        "released": entry.release_date_unix,
    }
    if repo is not None:
        data["repository"] = repo.full_name
    return data


def entries_table(rows: list[dict[str, Any]], title: str = "") -> Table:
    table = Table(title=title or None, show_lines=False)
    columns = ["repository", "ref", "stage", "language", "subject", "title", "metadata_type"]
    for column in columns:
        table.add_column(column, overflow="fold")
    for row in rows:
        table.add_row(*(str(row.get(column, "")) for column in columns))
    return table


def key_value_table(data: dict[str, Any], title: str = "") -> Table:
    table = Table(title=title or None, show_header=False)
    table.add_column("key", style="bold")
    table.add_column("value", overflow="fold")
    for key, value in data.items():
        table.add_row(str(key), str(value))
    return table
