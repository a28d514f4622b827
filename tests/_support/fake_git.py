"""
In-memory git backend.

Repositories are keyed by their storage path (``owner/name.git``). Each
branch or tag points at a :class:`FakeCommit` holding a ``{path: bytes}``
file map, so a test describes exactly which manifests exist at which ref::

    git = FakeGitBackend()
    git.commit("unfoldingWord", "en_ult", branch="master",
               files={"manifest.yaml": rc_yaml()}, author_time=1_600_000_000)
    git.commit("unfoldingWord", "en_ult", tag="v42", files={...})
"""

from __future__ import annotations

import hashlib
import itertools
from dataclasses import dataclass, field

from catalog_spine.core.errors import GitError, RefNotFoundError
from catalog_spine.git import repository_path

_sequence = itertools.count(1)


@dataclass
class FakeBlob:
    data: bytes

    def read_all(self) -> bytes:
        return self.data


@dataclass
class FakeCommit:
    id: str
    files: dict[str, bytes] = field(default_factory=dict)
    author_time: int = 0

    def get_blob_by_path(self, path: str) -> FakeBlob | None:
        data = self.files.get(path)
        return FakeBlob(data) if data is not None else None


@dataclass
class FakeRepository:
    branches: dict[str, FakeCommit] = field(default_factory=dict)
    tags: dict[str, FakeCommit] = field(default_factory=dict)
    opened: int = 0
    closed: int = 0

    def get_branch_commit(self, name: str) -> FakeCommit:
        if name not in self.branches:
            raise RefNotFoundError(f"ref does not exist: {name}").with_context(ref=name)
        return self.branches[name]

    def get_tag_commit(self, name: str) -> FakeCommit:
        if name not in self.tags:
            raise RefNotFoundError(f"ref does not exist: {name}").with_context(ref=name)
        return self.tags[name]

    def close(self) -> None:
        self.closed += 1


class FakeGitBackend:
    """Git backend over in-memory repositories."""

    def __init__(self) -> None:
        self.repositories: dict[str, FakeRepository] = {}
        self.unavailable: set[str] = set()

    def repository(self, owner: str, name: str) -> FakeRepository:
        return self.repositories.setdefault(repository_path(owner, name), FakeRepository())

    def commit(
        self,
        owner: str,
        name: str,
        *,
        files: dict[str, bytes],
        branch: str | None = None,
        tag: str | None = None,
        author_time: int = 1_600_000_000,
    ) -> FakeCommit:
        """Create a commit and point *branch* and/or *tag* at it."""
        digest = hashlib.sha1()
        for path in sorted(files):
            digest.update(path.encode())
            digest.update(files[path])
        digest.update(str(next(_sequence)).encode())
        commit = FakeCommit(id=digest.hexdigest(), files=dict(files), author_time=author_time)
        repo = self.repository(owner, name)
        if branch is not None:
            repo.branches[branch] = commit
        if tag is not None:
            repo.tags[tag] = commit
        return commit

    def make_unavailable(self, owner: str, name: str) -> None:
        """Opening this repository raises :class:`GitError` from now on."""
        self.unavailable.add(repository_path(owner, name))

    def open_repository(self, path: str) -> FakeRepository:
        if path in self.unavailable or path not in self.repositories:
            raise GitError(f"repository not found: {path}").with_context(path=path)
        repo = self.repositories[path]
        repo.opened += 1
        return repo
