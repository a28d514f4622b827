"""
Root Typer application for the catalog-spine CLI.

Commands::

    catalog-spine init-db
    catalog-spine sync unfoldingWord/en_ult [--tag v42]
    catalog-spine sync-all
    catalog-spine search --lang en --subject Bible --stage prod
    catalog-spine validate manifest.yaml
    catalog-spine diagnostics unfoldingWord/en_ult [--tag v42]
    catalog-spine reload-schemas
    catalog-spine hosting add-repo|add-release|set-flags ...
"""

from __future__ import annotations

import signal
import threading
from pathlib import Path

import typer
from typer import Typer

from catalog_spine.cli.hosting import app as hosting_app
from catalog_spine.cli.utils import (
    console,
    entries_table,
    entry_to_dict,
    fail,
    key_value_table,
    open_container,
    print_json,
    resolve_repository,
)
from catalog_spine.core.logging import configure_logging
from catalog_spine.core.settings import get_settings

app = Typer(
    name="catalog-spine",
    help="Staged, searchable catalog entries for hosted resource repositories.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(hosting_app, name="hosting", help="Register hosting-platform repositories and releases.")


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from catalog_spine import __version__

        typer.echo(f"catalog-spine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Sync manifests into the catalog and search it."""
    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        service=settings.service_name,
    )


# ── Database ─────────────────────────────────────────────────────────────


@app.command("init-db")
def init_db(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
) -> None:
    """Create the catalog and hosting tables."""
    with open_container(database) as container:
        container.create_schema()
    console.print("[green]Database initialised[/green]")


# ── Sync ─────────────────────────────────────────────────────────────────


@app.command()
def sync(
    repository: str = typer.Argument(..., help="<owner>/<repo>"),
    tag: str | None = typer.Option(None, "--tag", "-t", help="Release tag (default branch when omitted)"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Sync the default branch or one release of a repository."""
    with open_container(database) as container:
        repo = resolve_repository(container, repository)
        if tag:
            outcome = container.synchronizer.sync_tag(repo, tag)
        else:
            outcome = container.synchronizer.sync(repo)

    payload = {"action": outcome.action.value, **outcome.to_payload()}
    if json_out:
        print_json(payload)
    else:
        console.print(key_value_table(payload, title=f"Sync: {repository}"))


@app.command("sync-all")
def sync_all(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Sweep every repository and release that has no catalog entry yet."""
    cancel = threading.Event()
    previous = signal.getsignal(signal.SIGINT)

    def _interrupt(signum: int, frame: object) -> None:
        cancel.set()

    try:
        signal.signal(signal.SIGINT, _interrupt)
    except ValueError:
        previous = None  # not in the main thread

    try:
        with open_container(database) as container:
            report = container.synchronizer.sync_all(cancel=cancel)
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)

    if json_out:
        print_json(report.to_dict())
        return
    data = report.to_dict()
    summary = {"processed": data["processed"], "cancelled": data["cancelled"], **data["counts"]}
    console.print(key_value_table(summary, title="Sweep"))
    for failure in data["failures"]:
        console.print(
            f"[red]failed[/red] repo={failure['repo_id']} release={failure['release_id']}: {failure['error']}"
        )


# ── Search ───────────────────────────────────────────────────────────────


@app.command()
def search(
    q: list[str] = typer.Option([], "--q", "-q", help="Keywords (comma separated allowed)"),
    owner: list[str] = typer.Option([], "--owner"),
    repo: list[str] = typer.Option([], "--repo"),
    tag: list[str] = typer.Option([], "--tag"),
    lang: list[str] = typer.Option([], "--lang"),
    subject: list[str] = typer.Option([], "--subject"),
    book: list[str] = typer.Option([], "--book"),
    checking_level: list[str] = typer.Option([], "--checking-level"),
    metadata_type: list[str] = typer.Option([], "--metadata-type"),
    metadata_version: list[str] = typer.Option([], "--metadata-version"),
    content_format: list[str] = typer.Option([], "--format"),
    stage: str = typer.Option("prod", "--stage", help="prod, preprod, draft or latest"),
    include_history: bool = typer.Option(False, "--include-history"),
    include_metadata: bool = typer.Option(False, "--include-metadata", help="Match keywords in the whole manifest"),
    partial: bool = typer.Option(False, "--partial", help="Substring instead of exact facet matching"),
    sort: list[str] = typer.Option(
        [],
        "--sort",
        help="title, subject, identifier, reponame, tag, released, lang, stage [:asc|:desc]",
    ),
    page: int = typer.Option(1, "--page"),
    limit: int = typer.Option(0, "--limit", "-n"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Search the catalog."""
    from catalog_spine.search import SearchCatalogOptions

    with open_container(database) as container:
        options = SearchCatalogOptions.from_query(
            {
                "q": q,
                "owner": owner,
                "repo": repo,
                "tag": tag,
                "lang": lang,
                "subject": subject,
                "book": book,
                "checkingLevel": checking_level,
                "metadataType": metadata_type,
                "metadataVersion": metadata_version,
                "format": content_format,
                "stage": stage,
                "includeHistory": include_history,
                "includeMetadata": include_metadata,
                "partialMatch": partial,
                "sort": sort,
                "page": page,
                "limit": limit,
            }
        )
        result = container.search.search(options)

    rows = [entry_to_dict(entry, result.repository(entry)) for entry in result.entries]
    if json_out:
        print_json(
            {"total_count": result.total_count, "page": result.page, "page_size": result.page_size, "data": rows}
        )
        return
    console.print(entries_table(rows, title=f"Catalog ({result.total_count} total)"))


# ── Validation ───────────────────────────────────────────────────────────


@app.command()
def validate(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="manifest.yaml, manifest.json or metadata.json"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Validate a manifest file against its schema family."""
    from catalog_spine.manifest import decode_document
    from catalog_spine.schema import render_validation_text

    with open_container() as container:
        document = decode_document(path.read_bytes(), path.name)
        result = container.validator.validate(document, source=path.name)

    if json_out:
        print_json(result.to_dict())
    elif result.valid:
        console.print(f"[green]valid[/green] {path.name} ({result.family.value if result.family else '?'})")
    else:
        console.print(render_validation_text(result))
    if not result.valid:
        raise typer.Exit(code=1)


@app.command()
def diagnostics(
    repository: str = typer.Argument(..., help="<owner>/<repo>"),
    tag: str | None = typer.Option(None, "--tag", "-t"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the last validation failure recorded for a branch or release."""
    from catalog_spine.models import DEFAULT_BRANCH_RELEASE_ID

    with open_container(database) as container:
        repo = resolve_repository(container, repository)
        release_id = DEFAULT_BRANCH_RELEASE_ID
        if tag:
            release = container.hosting.get_release_by_tag(repo.id, tag)
            if release is None:
                fail(f"no release {tag} in {repository}", code="NOT_FOUND")
            release_id = release.id
        diagnostic = container.store.get_diagnostic(repo.id, release_id)

    if diagnostic is None:
        if json_out:
            print_json(None)
        else:
            console.print("[green]no diagnostics recorded[/green]")
        return
    if json_out:
        print_json(
            {
                "ref": diagnostic.ref,
                "metadata_type": diagnostic.metadata_type,
                "error_type": diagnostic.error_type,
                "message": diagnostic.message,
                "detail": diagnostic.detail,
            }
        )
    else:
        console.print(diagnostic.rendered or diagnostic.message)


@app.command("reload-schemas")
def reload_schemas(
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Re-fetch and recompile every manifest schema."""
    with open_container() as container:
        failures = container.schema_cache.reload()

    if json_out:
        print_json({family.value: error for family, error in failures.items()})
    else:
        for family, error in failures.items():
            console.print(f"[red]{family.value}[/red]: {error}")
        if not failures:
            console.print("[green]all schemas reloaded[/green]")
    if failures:
        raise typer.Exit(code=1)
