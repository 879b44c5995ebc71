"""
patchrun — per-run structured logging.

File: src/patchrun/observability/logging.py
Last updated: 2026-10-18

Purpose
- Route every structlog event (and any stdlib record under the ``patchrun`` logger)
  into one JSON-lines file per run: ``<log_dir>/<run_id>/patchrun.jsonl``.

What should be included in this file
- ``setup_logging`` / ``shutdown_logging`` owning the run's handlers and the structlog
  configuration.
- ``correlation_scope`` binding run id, plugin and patch id through
  ``structlog.contextvars``.
- A redaction processor for secrets carried by free-form plugin parameters.

Functional requirements
- Every line carries the run id, including lines written from engine worker threads
  that never entered a correlation scope.
- Shutting down restores structlog's defaults so later runs start clean.
"""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import Iterator, Mapping, MutableMapping
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

import structlog

LOG_FILENAME: Final[str] = "patchrun.jsonl"
CORRELATION_KEYS: Final[tuple[str, ...]] = ("run_id", "plugin", "patch_id")

_REDACTED: Final[str] = "***REDACTED***"
_SECRET_KEY: Final[re.Pattern[str]] = re.compile(
    r"(?i)secret|token|passw|passphrase|api_?key|credential"
)
_SECRET_ASSIGNMENT: Final[re.Pattern[str]] = re.compile(
    r"(?i)\b(api[_-]?key|token|password|secret)(\s*[:=]\s*)[^\s,;]+"
)
# Keys written by the pipeline itself; never masked.
_RESERVED_KEYS: Final[frozenset[str]] = frozenset(
    {"event", "level", "logger", "timestamp", "exception", *CORRELATION_KEYS}
)


@dataclass(frozen=True, slots=True)
class RunLog:
    """Handle for the logging of one run."""

    run_id: str
    log_path: Path
    logger: logging.Logger
    handlers: tuple[logging.Handler, ...]


_active: RunLog | None = None


def setup_logging(
    observability: Mapping[str, Any] | None,
    *,
    run_id: str,
    log_dir: str | Path | None = None,
    logger_name: str = "patchrun",
) -> RunLog:
    """Open the run's JSON-lines file and point structlog at it.

    ``observability`` is the ``[observability]`` config table. ``log_dir`` overrides
    its ``log_dir``. A run that is still active is shut down first.
    """

    global _active
    settings = dict(observability or {})
    level_name = str(settings.get("log_level", "INFO")).strip().upper()
    level = logging.getLevelNamesMapping().get(level_name)
    if level is None:
        raise ValueError(f"unsupported logging level: {level_name!r}")
    run_id = run_id.strip()
    if not run_id:
        raise ValueError("run_id must not be empty")

    if _active is not None:
        shutdown_logging(_active)

    base_dir = Path(log_dir if log_dir is not None else settings.get("log_dir", "logs"))
    log_path = base_dir / run_id / LOG_FILENAME
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = _json_formatter(run_id, redact=bool(settings.get("redact_secrets", True)))
    handlers: list[logging.Handler] = [logging.FileHandler(log_path, encoding="utf-8")]
    if settings.get("log_to_stdout", False):
        handlers.append(logging.StreamHandler(sys.stdout))

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.propagate = False
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    _active = RunLog(run_id=run_id, log_path=log_path, logger=logger, handlers=tuple(handlers))
    return _active


def shutdown_logging(run_log: RunLog | None = None) -> None:
    """Close the handlers of ``run_log`` (default: the active run). Safe to repeat."""

    global _active
    target = run_log if run_log is not None else _active
    if target is None:
        return
    for handler in target.handlers:
        target.logger.removeHandler(handler)
        handler.close()
    if target is _active:
        _active = None
        structlog.reset_defaults()


def active_run_log() -> RunLog | None:
    return _active


def get_correlation_context() -> dict[str, str]:
    bound = structlog.contextvars.get_contextvars()
    return {key: bound[key] for key in CORRELATION_KEYS if key in bound}


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Bind correlation keys for the block; ``None`` hides a key inside it."""

    unknown = sorted(set(fields) - set(CORRELATION_KEYS))
    if unknown:
        raise ValueError(f"unknown correlation keys: {', '.join(unknown)}")
    bind: dict[str, str] = {}
    for key, value in fields.items():
        if value is None:
            continue
        if not str(value).strip():
            raise ValueError(f"correlation value for {key!r} must not be empty")
        bind[key] = str(value).strip()

    previous = structlog.contextvars.get_contextvars()
    structlog.contextvars.unbind_contextvars(*(key for key in fields if key not in bind))
    structlog.contextvars.bind_contextvars(**bind)
    try:
        yield
    finally:
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(**previous)


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _json_formatter(run_id: str, *, redact: bool) -> structlog.stdlib.ProcessorFormatter:
    def stamp_run_id(
        _logger: object, _method: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        event_dict.setdefault("run_id", run_id)
        return event_dict

    processors: list[Any] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
        structlog.processors.format_exc_info,
        stamp_run_id,
    ]
    if redact:
        processors.append(redact_secrets)
    processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    return structlog.stdlib.ProcessorFormatter(
        processors=processors,
        foreign_pre_chain=[*_shared_processors(), structlog.stdlib.ExtraAdder()],
    )


def redact_secrets(
    _logger: object, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor masking secret-looking keys and ``key=value`` pairs in text."""

    for key in list(event_dict):
        if key not in _RESERVED_KEYS and _SECRET_KEY.search(key):
            event_dict[key] = _REDACTED
        else:
            event_dict[key] = _redact_value(event_dict[key])
    return event_dict


def _redact_value(value: object) -> object:
    if isinstance(value, str):
        return _SECRET_ASSIGNMENT.sub(lambda match: f"{match[1]}{match[2]}{_REDACTED}", value)
    if isinstance(value, Mapping):
        return {
            key: _REDACTED if _SECRET_KEY.search(str(key)) else _redact_value(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_redact_value(item) for item in value]
    return value


__all__ = [
    "CORRELATION_KEYS",
    "LOG_FILENAME",
    "RunLog",
    "active_run_log",
    "correlation_scope",
    "get_correlation_context",
    "redact_secrets",
    "setup_logging",
    "shutdown_logging",
]
