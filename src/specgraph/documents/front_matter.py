"""Front-matter rendering and the metadata refresh applied on every save."""

from __future__ import annotations

import re
from datetime import date
from pathlib import PurePath
from typing import TYPE_CHECKING, Final

from specgraph.documents.model import (
    ARTIFACT_NAME_PATTERN,
    PHASE_TAG_PATTERN,
    UNKNOWN_ARTIFACT,
    FrontMatter,
    parse_spec_file_name,
)
from specgraph.documents.parser import (
    FRONT_MATTER_DELIMITER,
    find_front_matter,
    find_mentions,
    parse,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

_FILENAME_MENTION_RE: Final[re.Pattern[str]] = re.compile(
    rf"(?<![\w.-])@?(?P<artifact>{ARTIFACT_NAME_PATTERN})\.(?P<tag>{PHASE_TAG_PATTERN})\.md\b"
)


def render_front_matter(front_matter: FrontMatter) -> list[str]:
    """Render front matter as lines, delimiters included, known keys first."""
    lines = [FRONT_MATTER_DELIMITER]
    if front_matter.artifact is not None:
        lines.append(f"artifact: {front_matter.artifact}")
    if front_matter.phase is not None:
        lines.append(f"phase: {front_matter.phase}")
    if front_matter.depends_on is not None:
        lines.append(f"depends-on: {_render_list(front_matter.depends_on)}")
    if front_matter.references is not None:
        lines.append(f"references: {_render_list(front_matter.references)}")
    if front_matter.version:
        lines.append(f"version: {front_matter.version}")
    if front_matter.last_updated:
        lines.append(f"last-updated: {front_matter.last_updated}")
    for key, value in front_matter.extras.items():
        rendered = _render_list(value) if isinstance(value, tuple) else value
        lines.append(f"{key}: {rendered}")
    lines.append(FRONT_MATTER_DELIMITER)
    return lines


def refresh_metadata(
    raw_text: str,
    path: str | PurePath,
    *,
    today: date | None = None,
    sync_references: bool = False,
) -> str:
    """
    Return ``raw_text`` with refreshed front matter.

    - ``last-updated`` becomes ``today`` (ISO date).
    - ``phase`` is forced to the phase implied by the file name.
    - ``artifact`` is filled from the file name when missing or the sentinel.
    - With ``sync_references`` the ``references`` list is replaced by the sorted,
      de-duplicated bare mentions found in the body.

    Files outside the ``<artifact>.<tag>.md`` convention only get ``last-updated``
    rewritten, and only when they already carry front matter.
    """
    stamp = (today or date.today()).isoformat()
    file_reference = parse_spec_file_name(PurePath(path).name)
    lines = raw_text.splitlines()
    block = find_front_matter(lines)
    if block is None and file_reference is None:
        return raw_text

    document = parse(raw_text, path)
    current = document.front_matter

    artifact = current.artifact
    if file_reference is not None and (not artifact or artifact == UNKNOWN_ARTIFACT):
        artifact = file_reference.artifact
    phase = file_reference.phase.label if file_reference is not None else current.phase

    references = current.references if current.references is not None else ()
    if sync_references:
        body_start = block.end_line + 1 if block is not None else 0
        mentioned = {
            match.reference.key
            for match in find_mentions(lines, start_line=body_start)
            if not match.reference.is_over_specified
        }
        references = tuple(sorted(mentioned))

    refreshed = FrontMatter(
        artifact=artifact,
        phase=phase,
        depends_on=current.depends_on if current.depends_on is not None else (),
        references=references,
        version=current.version,
        last_updated=stamp,
        extras=dict(current.extras),
    )

    rendered = render_front_matter(refreshed)
    if block is None:
        updated_lines = [*rendered, *lines]
    else:
        updated_lines = [*rendered, *lines[block.end_line + 1 :]]
    return _join_like(raw_text, updated_lines)


def convert_filename_mentions(raw_text: str) -> str:
    """Rewrite ``artifact.tag.md`` mentions in the body into ``@artifact.tag``."""
    lines = raw_text.splitlines()
    block = find_front_matter(lines)
    body_start = block.end_line + 1 if block is not None else 0

    converted = list(lines[:body_start])
    for line in lines[body_start:]:
        converted.append(_FILENAME_MENTION_RE.sub(r"@\g<artifact>.\g<tag>", line))
    if converted == lines:
        return raw_text
    return _join_like(raw_text, converted)


def _render_list(values: Sequence[str]) -> str:
    return "[" + ", ".join(f'"{value}"' for value in values) + "]"


def _join_like(original: str, lines: Sequence[str]) -> str:
    joined = "\n".join(lines)
    if original.endswith(("\n", "\r")):
        joined += "\n"
    return joined


__all__ = ["convert_filename_mentions", "refresh_metadata", "render_front_matter"]
