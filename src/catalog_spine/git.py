"""
Read-only git access used by the synchronizer.

The pipeline needs exactly four things from a repository: open it, resolve
a branch or tag to a commit, look up a file at that commit and read the
file's bytes. Those operations are declared as protocols so the hosting
platform can plug in its own object store; :class:`SubprocessGitBackend`
is the default implementation and shells out to the ``git`` CLI against
bare repositories under ``CatalogSettings.repo_root``.

Architecture:
    ::

        GitBackend.open_repository("owner/name.git") ──► GitRepository
        GitRepository.get_branch_commit("master")     ──► Commit
        GitRepository.get_tag_commit("v1")           ──► Commit
        Commit.get_blob_by_path("manifest.yaml")     ──► Blob | None
        Blob.read_all()                              ──► bytes

Error contract:
    - Missing file at a commit: ``get_blob_by_path`` returns ``None``
    - Missing branch or tag: :class:`RefNotFoundError`
    - Anything else (no repository, git failure): :class:`GitError`

Tags:
    catalog-spine, git, protocol, subprocess
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Protocol, runtime_checkable

from catalog_spine.core.errors import GitError, RefNotFoundError
from catalog_spine.core.logging import get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class Blob(Protocol):
    """File contents at a commit."""

    def read_all(self) -> bytes: ...


@runtime_checkable
class Commit(Protocol):
    """A resolved commit."""

    @property
    def id(self) -> str: ...

    @property
    def author_time(self) -> int:
        """Author timestamp in unix seconds."""
        ...

    def get_blob_by_path(self, path: str) -> Blob | None: ...


@runtime_checkable
class GitRepository(Protocol):
    """An opened repository."""

    def get_branch_commit(self, name: str) -> Commit: ...

    def get_tag_commit(self, name: str) -> Commit: ...

    def close(self) -> None: ...


@runtime_checkable
class GitBackend(Protocol):
    """Factory for opened repositories."""

    def open_repository(self, path: str) -> GitRepository: ...


def repository_path(owner_name: str, name: str) -> str:
    """Relative storage path of a repository (``owner/name.git``, lower-cased)."""
    return f"{owner_name.lower()}/{name.lower()}.git"


# ---------------------------------------------------------------------------
# git CLI implementation
# ---------------------------------------------------------------------------


class _GitCli:
    def __init__(self, git_dir: Path, timeout: float):
        self.git_dir = git_dir
        self.timeout = timeout
        executable = shutil.which("git")
        if executable is None:
            raise GitError("git executable not found on PATH")
        self.executable = executable

    def run(self, *args: str) -> subprocess.CompletedProcess[bytes]:
        try:
            return subprocess.run(
                [self.executable, "--git-dir", str(self.git_dir), *args],
                capture_output=True,
                timeout=self.timeout,
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            raise GitError(f"git {args[0]} failed: {e}", cause=e).with_context(path=str(self.git_dir))

    def resolve(self, ref: str) -> str | None:
        result = self.run("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        if result.returncode != 0:
            return None
        return result.stdout.decode().strip()


class SubprocessBlob:
    def __init__(self, cli: _GitCli, object_name: str):
        self._cli = cli
        self._object_name = object_name

    def read_all(self) -> bytes:
        result = self._cli.run("cat-file", "blob", self._object_name)
        if result.returncode != 0:
            raise GitError(
                f"unable to read blob {self._object_name}: {result.stderr.decode(errors='replace').strip()}"
            )
        return result.stdout


class SubprocessCommit:
    def __init__(self, cli: _GitCli, sha: str):
        self._cli = cli
        self._sha = sha
        self._author_time: int | None = None

    @property
    def id(self) -> str:
        return self._sha

    @property
    def author_time(self) -> int:
        if self._author_time is None:
            result = self._cli.run("show", "-s", "--format=%at", self._sha)
            if result.returncode != 0:
                raise GitError(f"unable to read commit {self._sha}")
            self._author_time = int(result.stdout.decode().strip() or 0)
        return self._author_time

    def get_blob_by_path(self, path: str) -> SubprocessBlob | None:
        object_name = f"{self._sha}:{path}"
        result = self._cli.run("cat-file", "-t", object_name)
        if result.returncode != 0 or result.stdout.decode().strip() != "blob":
            return None
        return SubprocessBlob(self._cli, object_name)


class SubprocessGitRepository:
    def __init__(self, git_dir: Path, timeout: float = 30.0):
        if not git_dir.is_dir():
            raise GitError(f"repository not found: {git_dir}").with_context(path=str(git_dir))
        self._cli = _GitCli(git_dir, timeout)

    def _commit(self, ref: str, display: str) -> SubprocessCommit:
        sha = self._cli.resolve(ref)
        if sha is None:
            raise RefNotFoundError(f"ref does not exist: {display}").with_context(ref=display)
        return SubprocessCommit(self._cli, sha)

    def get_branch_commit(self, name: str) -> SubprocessCommit:
        return self._commit(f"refs/heads/{name}", name)

    def get_tag_commit(self, name: str) -> SubprocessCommit:
        return self._commit(f"refs/tags/{name}", name)

    def close(self) -> None:
        pass


class SubprocessGitBackend:
    """Opens bare repositories below *root* with the ``git`` CLI."""

    def __init__(self, root: Path, timeout: float = 30.0):
        self.root = Path(root)
        self.timeout = timeout

    def open_repository(self, path: str) -> SubprocessGitRepository:
        logger.debug("git_repository_open", path=path)
        return SubprocessGitRepository(self.root / path, timeout=self.timeout)


__all__ = [
    "Blob",
    "Commit",
    "GitRepository",
    "GitBackend",
    "repository_path",
    "SubprocessGitBackend",
    "SubprocessGitRepository",
]
