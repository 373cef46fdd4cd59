"""
specgraph — unit tests for config loader

File: tests/unit/config/test_loader.py

Purpose
- Validate config loading from defaults, TOML, env overrides, and CLI overrides.

What this test file should cover
- Precedence: CLI > env > file > defaults.
- Environment variable mapping and type coercion.
- Path normalization relative to the config file.
- Typed views built from the effective config.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from specgraph.config.loader import (
    ConfigLoadError,
    dump_effective_config,
    env_variable_name,
    layout_from_config,
    load_config,
    logging_config_from,
    watch_settings_from,
)
from specgraph.config.schema import ConfigValidationError, default_config
from specgraph.workspace.watcher import WatchSettings

pytestmark = pytest.mark.unit


def _write_config(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_missing_default_file_yields_defaults(tmp_path: Path) -> None:
    config = load_config(base_dir=tmp_path, environ={})
    assert config == default_config()


def test_missing_explicit_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError):
        load_config(tmp_path / "nope.toml", environ={})


def test_invalid_toml_is_an_error(tmp_path: Path) -> None:
    config_path = tmp_path / "specgraph.toml"
    _write_config(config_path, "[layout\n")
    with pytest.raises(ConfigLoadError):
        load_config(config_path, environ={})


def test_unknown_keys_in_file_fail_validation(tmp_path: Path) -> None:
    _write_config(tmp_path / "specgraph.toml", "[layout]\nextension = 'md'\n")
    with pytest.raises(ConfigValidationError):
        load_config(base_dir=tmp_path, environ={})


def test_precedence_default_file_env_cli(tmp_path: Path) -> None:
    _write_config(
        tmp_path / "specgraph.toml",
        """
[layout]
specs_dir = "docs"

[watch]
debounce_ms = 100
sync_references = true
""".strip(),
    )

    config = load_config(
        base_dir=tmp_path,
        environ={
            "SPECGRAPH_WATCH_DEBOUNCE_MS": "200",
            "SPECGRAPH_LAYOUT_SUMMARY_DOCUMENT": "Overview.md",
        },
        cli_overrides={"watch.debounce_ms": 300, "layout.specs_dir": None},
    )

    assert config["layout"]["specs_dir"] == "docs"
    assert config["layout"]["summary_document"] == "Overview.md"
    assert config["watch"]["debounce_ms"] == 300
    assert config["watch"]["sync_references"] is True
    assert config["watch"]["rewrite_metadata"] is True


@pytest.mark.parametrize(
    ("name", "raw", "path", "expected"),
    [
        ("SPECGRAPH_WATCH_REWRITE_METADATA", "off", ("watch", "rewrite_metadata"), False),
        ("SPECGRAPH_OBSERVABILITY_LOG_TO_STDOUT", "YES", ("observability", "log_to_stdout"), True),
        ("SPECGRAPH_SEARCH_SOURCE_GLOBS", "src/**, lib/** ,", ("search", "source_globs"),
         ["src/**", "lib/**"]),
        ("SPECGRAPH_OBSERVABILITY_LOG_LEVEL", "info", ("observability", "log_level"), "INFO"),
    ],
)
def test_env_values_are_coerced(
    tmp_path: Path, name: str, raw: str, path: tuple[str, str], expected: object
) -> None:
    config = load_config(base_dir=tmp_path, environ={name: raw})
    assert config[path[0]][path[1]] == expected


@pytest.mark.parametrize(
    ("name", "raw"),
    [("SPECGRAPH_WATCH_DEBOUNCE_MS", "soon"), ("SPECGRAPH_WATCH_SYNC_REFERENCES", "maybe")],
)
def test_bad_env_values_are_rejected(tmp_path: Path, name: str, raw: str) -> None:
    with pytest.raises(ConfigLoadError, match=name):
        load_config(base_dir=tmp_path, environ={name: raw})


def test_log_dir_is_made_absolute_relative_to_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "conf" / "specgraph.toml"
    _write_config(config_path, '[observability]\nlog_dir = "logs"\n')

    config = load_config(config_path, environ={})

    expected = (tmp_path / "conf" / "logs").resolve().as_posix()
    assert config["observability"]["log_dir"] == expected


def test_empty_log_dir_stays_empty(tmp_path: Path) -> None:
    config = load_config(base_dir=tmp_path, environ={})
    assert config["observability"]["log_dir"] == ""
    assert logging_config_from(config).log_dir is None


def test_typed_views(tmp_path: Path) -> None:
    config = load_config(
        base_dir=tmp_path,
        environ={},
        cli_overrides={"layout.specs_dir": "docs", "observability.log_level": "ERROR"},
    )

    layout = layout_from_config(config)
    assert layout.specs_dir == "docs"
    assert layout.summary_path == "docs/ConOps.md"

    logging_config = logging_config_from(config)
    assert logging_config.level == "ERROR"
    assert logging_config.log_to_stream is True


def test_dump_is_deterministic(tmp_path: Path) -> None:
    config = load_config(base_dir=tmp_path, environ={})
    first = dump_effective_config(config)

    assert first == dump_effective_config(load_config(base_dir=tmp_path, environ={}))
    assert json.loads(first) == config


def test_env_variable_names_follow_section_and_key() -> None:
    assert env_variable_name("watch", "debounce_ms") == "SPECGRAPH_WATCH_DEBOUNCE_MS"
    assert env_variable_name("layout", "specs_dir") == "SPECGRAPH_LAYOUT_SPECS_DIR"


def test_cli_override_keys_must_be_dotted(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError):
        load_config(base_dir=tmp_path, environ={}, cli_overrides={"debounce_ms": 1})


def test_watch_settings_follow_config(tmp_path: Path) -> None:
    defaults = watch_settings_from(load_config(base_dir=tmp_path, environ={}))
    assert defaults == WatchSettings()
    assert defaults.debounce_seconds == 0.5
    assert defaults.rewrite_metadata is True

    (tmp_path / "specgraph.toml").write_text(
        "[watch]\ndebounce_ms = 250\nrewrite_metadata = false\n", encoding="utf-8"
    )
    config = load_config(
        base_dir=tmp_path,
        environ={"SPECGRAPH_WATCH_SYNC_REFERENCES": "yes"},
    )

    assert watch_settings_from(config) == WatchSettings(
        debounce_seconds=0.25, rewrite_metadata=False, sync_references=True
    )
