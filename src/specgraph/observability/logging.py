"""
specgraph — structured logging

File: src/specgraph/observability/logging.py

Purpose
- JSON-lines logging for the CLI and the change handler, one object per record.

What should be included in this file
- ``setup_structured_logging`` wiring a non-blocking queue handler to file and stream sinks.
- ``correlation_scope`` binding ``command``/``document``/``event_kind`` through contextvars.
- ``get_logger`` for components that are not handed a logger explicitly.

Functional requirements
- Records are never blocked on I/O; a full queue drops the record and counts it.
- Correlation is captured on the emitting thread, before the record is queued.
- The caller owns the returned handle; nothing is installed process-wide.
"""

from __future__ import annotations

import contextvars
import json
import logging
import logging.handlers
import math
import queue
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path, PurePath
from types import MappingProxyType
from typing import Final, cast

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

ROOT_LOGGER_NAME: Final[str] = "specgraph"
LOG_FILE_NAME: Final[str] = "specgraph.jsonl"
CORRELATION_FIELDS: Final[tuple[str, ...]] = ("command", "document", "event_kind")

# Attributes every LogRecord carries; anything else on a record came from ``extra``.
_RECORD_ATTRIBUTES: Final[frozenset[str]] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "correlation"}

_correlation: contextvars.ContextVar[Mapping[str, str]] = contextvars.ContextVar(
    "specgraph_correlation", default=MappingProxyType({})
)


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Sinks and level for one setup; ``log_dir=None`` means no log file."""

    logger_name: str = ROOT_LOGGER_NAME
    level: int | str = "WARNING"
    log_dir: Path | str | None = None
    log_filename: str = LOG_FILE_NAME
    log_to_stream: bool = True
    queue_size: int = 4096


def get_logger(name: str | None = None) -> logging.Logger:
    """``specgraph`` itself, or a child of it; names already under it are kept as is."""
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def get_correlation_context() -> dict[str, str]:
    return dict(_correlation.get())


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """
    Bind correlation fields for records logged inside the block.

    ``None`` unbinds a field inherited from an outer scope; blank values are ignored.
    """
    bound = get_correlation_context()
    for name, value in fields.items():
        if value is None:
            bound.pop(name, None)
        elif value.strip():
            bound[name] = value.strip()
    token = _correlation.set(bound)
    try:
        yield
    finally:
        _correlation.reset(token)


def parse_log_level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    try:
        return logging.getLevelNamesMapping()[value.strip().upper()]
    except KeyError:
        raise ValueError(f"unsupported logging level {value!r}") from None


class _DroppingQueueHandler(logging.handlers.QueueHandler):
    def __init__(self, records: queue.Queue[logging.LogRecord]) -> None:
        super().__init__(records)
        self._drop_lock = threading.Lock()
        self.dropped = 0

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        bound = get_correlation_context()
        if bound:
            attached = getattr(record, "correlation", None)
            if isinstance(attached, Mapping):
                bound.update((str(k), str(v)) for k, v in attached.items() if v)
            record.correlation = bound
        return cast("logging.LogRecord", super().prepare(record))

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            with self._drop_lock:
                self.dropped += 1


class JsonLineFormatter(logging.Formatter):
    """
    Render a record as one compact JSON object with sorted keys.

    Top level: ``timestamp``, ``level``, ``logger``, ``message``, the correlation fields, and
    ``exception``/``stack`` when present. Everything passed through ``extra`` lands under
    ``fields``.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=UTC)
        payload: dict[str, JSONValue] = {
            "timestamp": created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_correlation_of(record))

        extras = {
            key: _to_json(value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES
            and key not in CORRELATION_FIELDS
            and not key.startswith("_")
        }
        if extras:
            payload["fields"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


@dataclass(eq=False)
class StructuredLoggingHandle:
    """Owns the queue listener and sinks of one ``setup_structured_logging`` call."""

    logger: logging.Logger
    log_path: Path | None
    _records: queue.Queue[logging.LogRecord]
    _queue_handler: _DroppingQueueHandler
    _listener: logging.handlers.QueueListener
    _sinks: tuple[logging.Handler, ...]
    _lock: threading.Lock = field(default_factory=threading.Lock)
    _closed: bool = False

    @property
    def dropped_records(self) -> int:
        return self._queue_handler.dropped

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def flush(self) -> None:
        """Wait until the listener has handed every queued record to the sinks."""
        if self._closed:
            return
        self._records.join()
        for sink in self._sinks:
            sink.flush()

    def shutdown(self) -> None:
        with self._lock:
            if self._closed:
                return
            # stop() drains what is still queued before joining the listener thread.
            self._listener.stop()
            self.logger.removeHandler(self._queue_handler)
            self._queue_handler.close()
            for sink in self._sinks:
                sink.flush()
                sink.close()
            self._closed = True

    def __enter__(self) -> StructuredLoggingHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()


def setup_structured_logging(config: LoggingConfig) -> StructuredLoggingHandle:
    """Route ``config.logger_name`` through a queue into JSON-lines sinks."""
    if config.queue_size <= 0:
        raise ValueError("queue_size must be > 0")
    if not config.log_filename or PurePath(config.log_filename).name != config.log_filename:
        raise ValueError("log_filename must be a bare file name")
    level = parse_log_level(config.level)

    sinks: list[logging.Handler] = []
    log_path: Path | None = None
    if config.log_dir is not None:
        log_path = Path(config.log_dir) / config.log_filename
        log_path.parent.mkdir(parents=True, exist_ok=True)
        sinks.append(logging.FileHandler(log_path, encoding="utf-8"))
    if config.log_to_stream:
        sinks.append(logging.StreamHandler())
    if not sinks:
        sinks.append(logging.NullHandler())
    formatter = JsonLineFormatter()
    for sink in sinks:
        sink.setLevel(level)
        sink.setFormatter(formatter)

    logger = logging.getLogger(config.logger_name)
    for previous in list(logger.handlers):
        logger.removeHandler(previous)
        previous.close()
    logger.setLevel(level)
    logger.propagate = False

    records: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=config.queue_size)
    queue_handler = _DroppingQueueHandler(records)
    queue_handler.setLevel(level)
    listener = logging.handlers.QueueListener(records, *sinks, respect_handler_level=True)
    listener.start()
    logger.addHandler(queue_handler)

    return StructuredLoggingHandle(
        logger=logger,
        log_path=log_path,
        _records=records,
        _queue_handler=queue_handler,
        _listener=listener,
        _sinks=tuple(sinks),
    )


def _correlation_of(record: logging.LogRecord) -> dict[str, str]:
    merged = get_correlation_context()
    sources: list[Mapping[str, object]] = [
        {name: getattr(record, name) for name in CORRELATION_FIELDS if hasattr(record, name)}
    ]
    attached = getattr(record, "correlation", None)
    if isinstance(attached, Mapping):
        sources.append(attached)
    for source in sources:
        for key, value in source.items():
            if isinstance(value, str) and value.strip():
                merged[str(key)] = value.strip()
    return merged


def _to_json(value: object) -> JSONValue:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else repr(value)
    if isinstance(value, Enum):
        return _to_json(value.value)
    if isinstance(value, PurePath):
        return value.as_posix()
    if isinstance(value, Mapping):
        return {str(key): _to_json(item) for key, item in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted((_to_json(item) for item in value), key=repr)
    if isinstance(value, (list, tuple)):
        return [_to_json(item) for item in value]
    return repr(value)


__all__ = [
    "CORRELATION_FIELDS",
    "JSONScalar",
    "JSONValue",
    "JsonLineFormatter",
    "LOG_FILE_NAME",
    "LoggingConfig",
    "ROOT_LOGGER_NAME",
    "StructuredLoggingHandle",
    "correlation_scope",
    "get_correlation_context",
    "get_logger",
    "parse_log_level",
    "setup_structured_logging",
]
