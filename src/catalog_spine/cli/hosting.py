"""
CLI: ``catalog-spine hosting``: hosting-platform rows the catalog reads.

The hosting platform normally owns these tables; the commands exist for
standalone deployments and local testing.
"""

from __future__ import annotations

import typer

from catalog_spine.cli.utils import console, fail, key_value_table, open_container, print_json, resolve_repository

app = typer.Typer(no_args_is_help=True)


@app.command("add-repo")
def add_repo(
    repository: str = typer.Argument(..., help="<owner>/<repo>"),
    default_branch: str = typer.Option("master", "--branch", "-b"),
    private: bool = typer.Option(False, "--private"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Register a repository."""
    owner, sep, name = repository.partition("/")
    if not sep or not owner or not name:
        fail(f"expected <owner>/<repo>, got {repository!r}", code="USAGE")
    with open_container(database) as container:
        repo = container.hosting.add_repository(owner, name, default_branch=default_branch, is_private=private)

    data = {"id": repo.id, "repository": repo.full_name, "default_branch": repo.default_branch}
    if json_out:
        print_json(data)
    else:
        console.print(key_value_table(data, title="Repository"))


@app.command("add-release")
def add_release(
    repository: str = typer.Argument(..., help="<owner>/<repo>"),
    tag: str = typer.Argument(..., help="Tag name, e.g. v42"),
    prerelease: bool = typer.Option(False, "--prerelease"),
    draft: bool = typer.Option(False, "--draft"),
    target: str = typer.Option("", "--target", help="Target branch of a draft"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Register a release of a repository."""
    with open_container(database) as container:
        repo = resolve_repository(container, repository)
        release = container.hosting.add_release(
            repo.id, tag, is_prerelease=prerelease, is_draft=draft, target=target
        )

    data = {"id": release.id, "repository": repo.full_name, "tag": release.tag_name}
    if json_out:
        print_json(data)
    else:
        console.print(key_value_table(data, title="Release"))


@app.command("set-flags")
def set_flags(
    repository: str = typer.Argument(..., help="<owner>/<repo>"),
    private: bool | None = typer.Option(None, "--private/--public"),  # noqa: UP007
    archived: bool | None = typer.Option(None, "--archived/--unarchived"),  # noqa: UP007
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Change visibility flags; hidden repositories lose their catalog entries."""
    changes = {}
    if private is not None:
        changes["is_private"] = private
    if archived is not None:
        changes["is_archived"] = archived
    if not changes:
        fail("nothing to change", code="USAGE")
    with open_container(database) as container:
        repo = resolve_repository(container, repository)
        repo = container.hosting.update_repository(repo.id, **changes)
        if repo.is_hidden:
            container.synchronizer.purge(repo.id)
    console.print(
        key_value_table({"repository": repo.full_name, "private": repo.is_private, "archived": repo.is_archived})
    )
