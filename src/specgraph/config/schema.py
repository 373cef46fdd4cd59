"""
specgraph — configuration schema

File: src/specgraph/config/schema.py

Purpose
- Typed shape, defaults and strict validation for ``specgraph.toml``.

What should be included in this file
- One ``TypedDict`` per section plus the root config type.
- Deterministic defaults and a deep merge helper.
- A checker per setting; validation reports every bad setting with its dotted path.

Functional requirements
- Unknown sections and keys are rejected.
- Partial files are accepted; missing keys fall back to defaults before validation.
"""

from __future__ import annotations

import copy
import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

# (section, key) settings holding filesystem paths resolved against the config file.
PATH_FIELDS: Final[tuple[tuple[str, str], ...]] = (("observability", "log_dir"),)


class LayoutConfig(TypedDict):
    specs_dir: str
    summary_document: str


class WatchConfig(TypedDict):
    debounce_ms: int
    rewrite_metadata: bool
    sync_references: bool


class SearchConfig(TypedDict):
    source_globs: list[str]
    exclude_dirs: list[str]


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_dir: str
    log_to_stdout: bool


class SpecgraphConfig(TypedDict):
    layout: LayoutConfig
    watch: WatchConfig
    search: SearchConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[SpecgraphConfig] = {
    "layout": {
        "specs_dir": "specs",
        "summary_document": "ConOps.md",
    },
    "watch": {
        "debounce_ms": 500,
        "rewrite_metadata": True,
        "sync_references": False,
    },
    "search": {
        "source_globs": ["**/*"],
        "exclude_dirs": [".git", ".venv", "__pycache__", "build", "dist", "node_modules"],
    },
    "observability": {
        "log_level": "WARNING",
        "log_dir": "",
        "log_to_stdout": True,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return not self.issues


class ConfigValidationError(ValueError):
    """Raised by ``assert_valid_config``; ``issues`` keeps the structured findings."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        lines = [f"- {issue}" for issue in self.issues] or ["- (no details)"]
        super().__init__("invalid config:\n" + "\n".join(lines))


class _Invalid(Exception):
    """Raised by a checker; ``suffix`` refines the path, e.g. ``[2]`` for a list item."""

    def __init__(self, message: str, suffix: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.suffix = suffix


_Checker = Callable[[object], object]


def default_config() -> SpecgraphConfig:
    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``; lists are replaced, not concatenated."""
    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(config: object) -> ConfigValidationResult:
    if not isinstance(config, Mapping):
        issue = ConfigValidationIssue("<root>", f"expected object, got {type(config).__name__}")
        return ConfigValidationResult(config=None, issues=(issue,))

    issues = [ConfigValidationIssue(key, "unknown field") for key in _unknown(config, _SCHEMA)]
    completed = merge_config(default_config(), config)
    normalized: dict[str, Any] = {}
    for section, checkers in _SCHEMA.items():
        payload = completed[section]
        if not isinstance(payload, Mapping):
            issues.append(
                ConfigValidationIssue(section, f"expected object, got {type(payload).__name__}")
            )
            continue
        issues.extend(
            ConfigValidationIssue(f"{section}.{key}", "unknown field")
            for key in _unknown(payload, checkers)
        )
        values: dict[str, Any] = {}
        for key, check in checkers.items():
            try:
                values[key] = check(payload[key])
            except _Invalid as exc:
                issues.append(ConfigValidationIssue(f"{section}.{key}{exc.suffix}", exc.message))
        normalized[section] = values

    if issues:
        return ConfigValidationResult(config=None, issues=tuple(issues))
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: object) -> dict[str, Any]:
    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _unknown(payload: Mapping[Any, object], known: Mapping[str, object]) -> list[str]:
    return sorted(str(key) for key in payload if key not in known)


def _type_error(expected: str, value: object) -> _Invalid:
    return _Invalid(f"expected {expected}, got {type(value).__name__}")


def _text(value: object) -> str:
    if not isinstance(value, str):
        raise _type_error("string", value)
    stripped = value.strip()
    if not stripped:
        raise _Invalid("must not be empty")
    return stripped


def _flag(value: object) -> bool:
    if not isinstance(value, bool):
        raise _type_error("boolean", value)
    return value


def _non_negative_int(value: object) -> int:
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise _type_error("integer", value)
    if value < 0:
        raise _Invalid("must be >= 0")
    return value


def _text_list(value: object) -> list[str]:
    if isinstance(value, str) or not isinstance(value, Sequence):
        raise _type_error("list of strings", value)
    items: list[str] = []
    for index, item in enumerate(value):
        try:
            items.append(_text(item))
        except _Invalid as exc:
            raise _Invalid(exc.message, f"[{index}]") from None
    return items


def _specs_dir(value: object) -> str:
    text = _text(value)
    if text.startswith("/") or ".." in text.split("/"):
        raise _Invalid("must be relative to the project root")
    return text.rstrip("/")


def _file_name(value: object) -> str:
    text = _text(value)
    if "/" in text:
        raise _Invalid("must be a bare file name")
    return text


def _log_level(value: object) -> str:
    level = _text(value).upper()
    if level not in LOG_LEVELS:
        raise _Invalid(f"invalid value {level!r}; expected one of: {', '.join(sorted(LOG_LEVELS))}")
    return level


def _optional_path(value: object) -> str:
    if not isinstance(value, str):
        raise _type_error("string", value)
    if "\x00" in value:
        raise _Invalid("must not contain NUL bytes")
    return value.strip()


_SCHEMA: Final[Mapping[str, Mapping[str, _Checker]]] = {
    "layout": {"specs_dir": _specs_dir, "summary_document": _file_name},
    "watch": {
        "debounce_ms": _non_negative_int,
        "rewrite_metadata": _flag,
        "sync_references": _flag,
    },
    "search": {"source_globs": _text_list, "exclude_dirs": _text_list},
    "observability": {
        "log_level": _log_level,
        "log_dir": _optional_path,
        "log_to_stdout": _flag,
    },
}


__all__ = [
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "LOG_LEVELS",
    "LayoutConfig",
    "ObservabilityConfig",
    "PATH_FIELDS",
    "SearchConfig",
    "SpecgraphConfig",
    "WatchConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
