"""
specgraph — corpus capability

File: src/specgraph/workspace/corpus.py

Purpose
- The only way the engine touches documents: list spec files, read one, optionally write one.

What should be included in this file
- ``SpecCorpus`` / ``SearchableCorpus`` / ``WritableCorpus`` protocols.
- ``FileSystemCorpus`` rooted at a project directory.
- ``InMemoryCorpus`` for tests and for hosts holding unsaved buffers.

Functional requirements
- Paths are POSIX strings relative to the corpus root.
- ``read_file`` raises ``OSError`` for absent or unreadable files; ``read_optional``
  turns that (and undecodable bytes) into ``None``.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Final, Protocol, runtime_checkable

from specgraph.observability.logging import get_logger
from specgraph.utils.fs import atomic_write_text, resolve_within
from specgraph.workspace.layout import SpecLayout

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

DEFAULT_SOURCE_GLOBS: Final[tuple[str, ...]] = ("**/*",)
DEFAULT_EXCLUDE_DIRS: Final[tuple[str, ...]] = (
    ".git",
    ".venv",
    "__pycache__",
    "build",
    "dist",
    "node_modules",
)

_LOGGER = get_logger("workspace.corpus")


@runtime_checkable
class SpecCorpus(Protocol):
    """Read access to the specification documents of one project."""

    def list_artifact_files(self) -> Sequence[str]: ...

    def read_file(self, path: str) -> str: ...


@runtime_checkable
class SearchableCorpus(SpecCorpus, Protocol):
    """A corpus that can also enumerate non-spec files for textual searches."""

    def list_source_files(self) -> Sequence[str]: ...


@runtime_checkable
class WritableCorpus(SpecCorpus, Protocol):
    def write_file(self, path: str, text: str) -> None: ...


def read_optional(
    corpus: SpecCorpus, path: str, *, logger: logging.Logger | None = None
) -> str | None:
    """Read ``path``; unreadable files count as absent."""
    try:
        return corpus.read_file(path)
    except (OSError, UnicodeDecodeError) as exc:
        (logger or _LOGGER).debug(
            "corpus file unavailable", extra={"path": path, "error": type(exc).__name__}
        )
        return None


def list_all_files(corpus: SpecCorpus) -> tuple[str, ...]:
    """Spec files first, then source files when the corpus can list them."""
    files = list(corpus.list_artifact_files())
    if isinstance(corpus, SearchableCorpus):
        seen = set(files)
        files.extend(path for path in corpus.list_source_files() if path not in seen)
    return tuple(files)


class FileSystemCorpus:
    """Corpus backed by a project directory on disk."""

    def __init__(
        self,
        root: str | Path,
        *,
        layout: SpecLayout | None = None,
        source_globs: Iterable[str] = DEFAULT_SOURCE_GLOBS,
        exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    ) -> None:
        self._root = Path(root).resolve()
        self._layout = layout or SpecLayout()
        self._source_globs = tuple(source_globs)
        self._exclude_dirs = frozenset(exclude_dirs)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def layout(self) -> SpecLayout:
        return self._layout

    def list_artifact_files(self) -> list[str]:
        specs_root = self._root / self._layout.specs_dir
        if not specs_root.is_dir():
            return []
        found = {
            self._relative(path)
            for path in specs_root.rglob("*.md")
            if path.is_file() and not self._is_excluded(path)
        }
        return sorted(found)

    def list_source_files(self) -> list[str]:
        found: set[str] = set()
        for pattern in self._source_globs:
            for path in self._root.glob(pattern):
                if not path.is_file() or self._is_excluded(path):
                    continue
                relative = self._relative(path)
                if self._layout.is_spec_path(relative):
                    continue
                found.add(relative)
        return sorted(found)

    def read_file(self, path: str) -> str:
        return resolve_within(self._root, path).read_text(encoding="utf-8-sig")

    def write_file(self, path: str, text: str) -> None:
        target = resolve_within(self._root, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        atomic_write_text(target, text)

    def relative_path(self, path: str | Path) -> str:
        """Normalize an absolute or root-relative path to corpus form."""
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        return self._relative(resolve_within(self._root, candidate.resolve()))

    def _relative(self, path: Path) -> str:
        return path.relative_to(self._root).as_posix()

    def _is_excluded(self, path: Path) -> bool:
        parts = path.relative_to(self._root).parts[:-1]
        return any(part in self._exclude_dirs for part in parts)


class InMemoryCorpus:
    """Dictionary-backed corpus; spec files are the ones the layout recognizes."""

    def __init__(
        self,
        files: Mapping[str, str] | None = None,
        *,
        layout: SpecLayout | None = None,
    ) -> None:
        self._layout = layout or SpecLayout()
        self._files: dict[str, str] = {}
        for path, text in (files or {}).items():
            self.write_file(path, text)

    @property
    def layout(self) -> SpecLayout:
        return self._layout

    def list_artifact_files(self) -> list[str]:
        return sorted(path for path in self._files if self._layout.is_spec_path(path))

    def list_source_files(self) -> list[str]:
        return sorted(path for path in self._files if not self._layout.is_spec_path(path))

    def read_file(self, path: str) -> str:
        try:
            return self._files[_normalize(path)]
        except KeyError:
            raise FileNotFoundError(path) from None

    def write_file(self, path: str, text: str) -> None:
        self._files[_normalize(path)] = text

    def delete_file(self, path: str) -> None:
        self._files.pop(_normalize(path), None)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and _normalize(path) in self._files


def _normalize(path: str) -> str:
    return PurePosixPath(path).as_posix()


__all__ = [
    "DEFAULT_EXCLUDE_DIRS",
    "DEFAULT_SOURCE_GLOBS",
    "FileSystemCorpus",
    "InMemoryCorpus",
    "SearchableCorpus",
    "SpecCorpus",
    "WritableCorpus",
    "list_all_files",
    "read_optional",
]
