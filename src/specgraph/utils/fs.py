"""
specgraph — filesystem helpers

File: src/specgraph/utils/fs.py

Purpose
- Atomic text writes for metadata refresh and root containment checks for the corpus.

Functional requirements
- A refreshed document is either fully replaced or left untouched.
- Corpus paths that escape the project root are rejected.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path

PathLike = str | os.PathLike[str]

__all__ = ["atomic_write_text", "resolve_within"]


def atomic_write_text(path: PathLike, text: str, *, encoding: str = "utf-8") -> None:
    """
    Replace ``path`` with ``text`` in one step.

    The temp file lives next to the target so ``os.replace`` never crosses devices.
    """
    target = Path(path)
    parent = target.parent.resolve(strict=True)

    fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=str(parent))
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, target)
    except BaseException:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise


def resolve_within(root: PathLike, relative: PathLike) -> Path:
    """Join ``relative`` onto ``root``; raise ``ValueError`` if the result leaves ``root``."""
    base = Path(root).resolve()
    candidate = (base / relative).resolve()
    try:
        candidate.relative_to(base)
    except ValueError as exc:
        raise ValueError(f"path escapes corpus root: {relative!s}") from exc
    return candidate
