"""
specgraph — process entrypoint

File: src/specgraph/main.py

Purpose
- Own the exit-code contract and turn anything that escapes a command into one of its codes.

Functional requirements
- Expected failures print a one-line message; internal errors print the traceback.
- An exception wrapped by another (``raise ... from``) is classified by the wrapped cause.
"""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING, Final

from specgraph.config.loader import ConfigLoadError
from specgraph.config.schema import ConfigValidationError
from specgraph.resolution.identifiers import ResolutionError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class ExitCode(IntEnum):
    SUCCESS = 0
    ISSUES_FOUND = 1
    CONFIG_ERROR = 2
    RESOLUTION_ERROR = 3
    INTERNAL_ERROR = 4


_ERROR_FAMILIES: Final[tuple[tuple[tuple[type[BaseException], ...], ExitCode], ...]] = (
    ((ConfigLoadError, ConfigValidationError), ExitCode.CONFIG_ERROR),
    ((ResolutionError,), ExitCode.RESOLUTION_ERROR),
)


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Console-script and ``python -m specgraph`` entrypoint; never raises."""
    try:
        from specgraph.ui.cli import run_cli

        code: object = run_cli(argv)
    except SystemExit as exc:
        # argparse exits 2 on usage errors and 0 after --help.
        code = exc.code
    except Exception as exc:  # noqa: BLE001 - last line of defence for the process.
        exit_code = route_exception(exc)
        if exit_code is ExitCode.INTERNAL_ERROR:
            traceback.print_exception(exc, file=sys.stderr)
        else:
            print(f"error: {str(exc).strip() or type(exc).__name__}", file=sys.stderr)
        return int(exit_code)
    return _as_exit_code(code)


def route_exception(exc: BaseException) -> ExitCode:
    for link in _causes(exc):
        for families, exit_code in _ERROR_FAMILIES:
            if isinstance(link, families):
                return exit_code
    return ExitCode.INTERNAL_ERROR


def _causes(exc: BaseException) -> Iterator[BaseException]:
    """``exc`` followed by its explicit cause or implicit context, stopping at loops."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


def _as_exit_code(code: object) -> int:
    if code is None:
        return int(ExitCode.SUCCESS)
    if isinstance(code, int) and code in {member.value for member in ExitCode}:
        return code
    if isinstance(code, str) and code.strip():
        print(code.strip(), file=sys.stderr)
    return int(ExitCode.INTERNAL_ERROR)


__all__ = ["ExitCode", "cli_entrypoint", "route_exception"]
