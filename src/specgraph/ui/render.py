"""
specgraph — CLI output rendering

File: src/specgraph/ui/render.py

Purpose
- Keep human-readable CLI output in one place so command handlers only build payloads.

Functional requirements
- Plain text only; output is deterministic for a given payload.
- Locations are printed one-based (``path:line:column``) although spans are zero-based.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from collections.abc import Sequence

    from specgraph.graph.extractor import SourceSpan


def format_location(path: str, span: SourceSpan) -> str:
    return f"{path}:{span.line + 1}:{span.column + 1}"


class CLIRenderer:
    """Thin plain-text renderer writing to ``stream`` (stdout when ``None``)."""

    def __init__(self, *, verbose: bool = False, stream: TextIO | None = None) -> None:
        self.verbose = verbose
        self._stream = stream

    def text(self, line: str = "") -> None:
        print(line, file=self._stream)

    def kv(self, key: str, value: object) -> None:
        self.text(f"{key}: {value}")

    def section(self, title: str) -> None:
        self.text()
        self.text(title)

    def location(self, path: str, span: SourceSpan, message: str | None = None) -> None:
        rendered = format_location(path, span)
        self.text(rendered if message is None else f"{rendered}: {message}")

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        """Left-aligned columns; nothing is printed for an empty table."""
        if not rows:
            return
        widths = [len(header) for header in headers]
        for row in rows:
            for index, cell in enumerate(row[: len(headers)]):
                widths[index] = max(widths[index], len(cell))

        def _pad(cells: Sequence[str]) -> str:
            return "  ".join(
                (cells[index] if index < len(cells) else "").ljust(width)
                for index, width in enumerate(widths)
            ).rstrip()

        self.text(f"  {_pad(headers)}")
        self.text(f"  {'  '.join('-' * width for width in widths)}")
        for row in rows:
            self.text(f"  {_pad(row)}")


def create_renderer(*, verbose: bool = False, stream: TextIO | None = None) -> CLIRenderer:
    return CLIRenderer(verbose=verbose, stream=stream)


__all__ = ["CLIRenderer", "create_renderer", "format_location"]
