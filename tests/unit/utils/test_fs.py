"""Tests for atomic writes and root-confined path resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from specgraph.utils.fs import atomic_write_text, resolve_within

pytestmark = pytest.mark.unit


def test_atomic_write_replaces_content_and_leaves_no_temp_files(tmp_path: Path) -> None:
    target = tmp_path / "doc.md"
    target.write_text("old", encoding="utf-8")

    atomic_write_text(target, "new\r\nline")

    assert target.read_bytes() == b"new\r\nline"
    assert sorted(path.name for path in tmp_path.iterdir()) == ["doc.md"]


def test_atomic_write_requires_existing_parent(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        atomic_write_text(tmp_path / "missing" / "doc.md", "x")


def test_resolve_within_accepts_nested_paths(tmp_path: Path) -> None:
    assert resolve_within(tmp_path, "a/b/../c.md") == (tmp_path / "a" / "c.md").resolve()


@pytest.mark.parametrize("relative", ["../escape.md", "/etc/passwd", "a/../../b"])
def test_resolve_within_rejects_escapes(tmp_path: Path, relative: str) -> None:
    with pytest.raises(ValueError):
        resolve_within(tmp_path, relative)
