"""
specgraph — runtime config loader.

File: src/specgraph/config/loader.py

Purpose
- Build the effective config from ``specgraph.toml``, ``SPECGRAPH_*`` variables and CLI flags.

What should be included in this file
- Precedence logic: CLI > env > file > defaults.
- One environment variable per leaf setting, typed by the leaf's default value.
- ``log_dir`` made absolute relative to the config file's directory.
- Typed views (``SpecLayout``, ``LoggingConfig``, ``WatchSettings``) for the rest of the package.

Functional requirements
- A missing ``specgraph.toml`` next to the project is fine; a missing ``--config`` file is not.
- The result is validated twice: after the file merge and after the overrides.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Final

from specgraph.config.schema import (
    DEFAULT_CONFIG,
    PATH_FIELDS,
    assert_valid_config,
    default_config,
    merge_config,
)
from specgraph.observability.logging import LoggingConfig
from specgraph.workspace.layout import SpecLayout
from specgraph.workspace.watcher import WatchSettings

DEFAULT_CONFIG_FILE: Final[str] = "specgraph.toml"
ENV_PREFIX: Final[str] = "SPECGRAPH_"

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class ConfigLoadError(ValueError):
    """The config file is missing or unreadable, or an override has the wrong type."""


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
    base_dir: str | Path | None = None,
) -> dict[str, Any]:
    """
    Return the validated effective config.

    ``cli_overrides`` uses dotted keys (``{"watch.debounce_ms": 100}``); ``None`` values
    mean "not given on the command line". Without ``config_path`` the loader looks for
    ``specgraph.toml`` in ``base_dir`` (default: the working directory).
    """
    if config_path is None:
        file_path = (Path(base_dir) if base_dir is not None else Path.cwd()) / DEFAULT_CONFIG_FILE
        from_file = _read_toml(file_path.resolve()) if file_path.exists() else {}
    else:
        file_path = Path(config_path).expanduser()
        if not file_path.exists():
            raise ConfigLoadError(f"config file not found: {file_path}")
        from_file = _read_toml(file_path.resolve())

    config = assert_valid_config(merge_config(default_config(), from_file))
    layers = (
        _env_layer(os.environ if environ is None else environ),
        _cli_layer(cli_overrides or {}),
    )
    for layer in layers:
        config = merge_config(config, layer)
    config = assert_valid_config(config)
    return normalize_paths(config, base_dir=file_path.resolve().parent)


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Absolute, normalized POSIX paths for ``PATH_FIELDS``; empty values stay empty."""
    result = merge_config({}, config)
    for section, key in PATH_FIELDS:
        raw = result.get(section, {}).get(key)
        if not raw:
            continue
        candidate = Path(os.path.expandvars(raw)).expanduser()
        if not candidate.is_absolute():
            candidate = base_dir / candidate
        result[section][key] = Path(os.path.normpath(candidate)).as_posix()
    return result


def dump_effective_config(config: Mapping[str, object]) -> str:
    return json.dumps(config, sort_keys=True, indent=2, ensure_ascii=False)


def layout_from_config(config: Mapping[str, Any]) -> SpecLayout:
    layout = config["layout"]
    return SpecLayout(specs_dir=layout["specs_dir"], summary_document=layout["summary_document"])


def logging_config_from(config: Mapping[str, Any]) -> LoggingConfig:
    observability = config["observability"]
    return LoggingConfig(
        level=observability["log_level"],
        log_dir=observability["log_dir"] or None,
        log_to_stream=observability["log_to_stdout"],
    )


def watch_settings_from(config: Mapping[str, Any]) -> WatchSettings:
    watch = config["watch"]
    return WatchSettings(
        debounce_seconds=watch["debounce_ms"] / 1000,
        rewrite_metadata=watch["rewrite_metadata"],
        sync_references=watch["sync_references"],
    )


def env_variable_name(section: str, key: str) -> str:
    """``("watch", "debounce_ms")`` -> ``SPECGRAPH_WATCH_DEBOUNCE_MS``."""
    return f"{ENV_PREFIX}{section}_{key}".upper()


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"cannot read config file {path}: {exc}") from exc


def _env_layer(environ: Mapping[str, str]) -> dict[str, dict[str, object]]:
    layer: dict[str, dict[str, object]] = {}
    for section, settings in DEFAULT_CONFIG.items():
        for key, default in settings.items():
            name = env_variable_name(section, key)
            if name not in environ:
                continue
            parser = _ENV_PARSERS[type(default)]
            try:
                value = parser(environ[name].strip())
            except ValueError as exc:
                raise ConfigLoadError(f"{name} -> {section}.{key}: {exc}") from exc
            layer.setdefault(section, {})[key] = value
    return layer


def _cli_layer(overrides: Mapping[str, object]) -> dict[str, dict[str, object]]:
    layer: dict[str, dict[str, object]] = {}
    for dotted, value in sorted(overrides.items()):
        if value is None:
            continue
        section, _, key = dotted.partition(".")
        if not section or not key:
            raise ConfigLoadError(f"CLI override {dotted!r} must look like 'section.key'")
        layer.setdefault(section, {})[key] = value
    return layer


def _parse_bool(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError("expected a boolean (true/false, yes/no, on/off, 1/0)")


def _parse_int(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError("expected an integer") from None


def _parse_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


_ENV_PARSERS: Final[Mapping[type, Callable[[str], object]]] = {
    bool: _parse_bool,
    int: _parse_int,
    str: str,
    list: _parse_list,
}


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "dump_effective_config",
    "env_variable_name",
    "layout_from_config",
    "load_config",
    "logging_config_from",
    "normalize_paths",
    "watch_settings_from",
]
