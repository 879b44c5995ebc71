"""
patchrun — configuration defaults and structural validation.

File: src/patchrun/config/schema.py
Last updated: 2026-10-18

Purpose
- Hold the built-in defaults of ``patchrun.toml`` and check the shape of a merged
  config before anything reads it.

What should be included in this file
- One declarative field table per section; a single walker applies it.
- Deterministic deep merge used by the loader's precedence chain.

Functional requirements
- Every problem is reported as a (dotted path, message) pair; all of them at once.
- Semantic checks (negative timeouts, JRE lookup) belong to ``config.parameters``.
"""

from __future__ import annotations

import copy
import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final

from patchrun.constants import (
    DEFAULT_PATCHES_POOL,
    DEFAULT_TIMEOUT_BIAS,
    DEFAULT_TIMEOUT_COEFFICIENT,
)
from patchrun.errors import ConfigurationError

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

_REFERENCE = re.compile(r"[A-Za-z_][\w.]*:[A-Za-z_][\w.]*")

DEFAULT_CONFIG: Final[dict[str, dict[str, Any]]] = {
    "run": {
        "whitelist_prefix": "",
        "timeout_bias": DEFAULT_TIMEOUT_BIAS,
        "timeout_coefficient": DEFAULT_TIMEOUT_COEFFICIENT,
        "failing_tests": [],
        "patches_pool": DEFAULT_PATCHES_POOL,
        "reset_jvm": False,
        "restart_jvm": False,
        "reset_interface": False,
        "debug": False,
        "profiler_only": False,
        "all_tests_file": "",
        "arg_line": "",
    },
    "plugin": {"name": "", "params": {}},
    "project": {
        "group_id": "",
        "artifact_id": "",
        "output_dir": "target/classes",
        "test_output_dir": "target/test-classes",
        "test_classpath_file": "",
        "test_classpath": [],
        "dependencies": [],
    },
    "tool": {"artifacts": []},
    "plugins": {"factories": [], "entry_points": True},
    "engine": {"entry": ""},
    "observability": {
        "log_level": "INFO",
        "log_dir": "logs",
        "log_to_stdout": False,
        "redact_secrets": True,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ConfigurationError):
    """Raised when structural config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        lines = [f"- {issue.path}: {issue.message}" for issue in self.issues]
        super().__init__("invalid config:\n" + ("\n".join(lines) or "- <root>: unknown failure"))


# ---------------------------------------------------------------------------
# Field kinds
# ---------------------------------------------------------------------------


class _Rejected(Exception):
    """A single value failed its kind check; the walker records it."""


def _typed(value: object, kinds: tuple[type, ...], label: str) -> Any:
    if (isinstance(value, bool) and bool not in kinds) or not isinstance(value, kinds):
        raise _Rejected(f"expected {label}, got {type(value).__name__}")
    return value


def _flag(value: object) -> bool:
    return _typed(value, (bool,), "boolean")


def _integer(value: object) -> int:
    return _typed(value, (int,), "integer")


def _scalar(value: object) -> object:
    return _typed(value, (str, int, float, bool), "scalar value")


def _text(value: object) -> str:
    text = _typed(value, (str,), "string")
    if "\x00" in text:
        raise _Rejected("must not contain NUL bytes")
    return text.strip()


def _name(value: object) -> str:
    text = _text(value)
    if not text:
        raise _Rejected("must not be empty")
    return text


def _number(value: object) -> float:
    number = float(_typed(value, (int, float), "number"))
    if not math.isfinite(number):
        raise _Rejected("must be finite")
    return number


def _level(value: object) -> str:
    level = _name(value)
    if level not in LOG_LEVELS:
        raise _Rejected(f"invalid value {level!r}; expected one of: {', '.join(LOG_LEVELS)}")
    return level


def _reference(value: object) -> str:
    text = _text(value)
    if text and not _REFERENCE.fullmatch(text):
        raise _Rejected("must be a 'module:attribute' reference")
    return text


def _factory(value: object) -> str:
    return _reference(_name(value))


# A field spec is a kind function, or one of the containers below.


@dataclass(frozen=True, slots=True)
class _ListOf:
    item: Any


@dataclass(frozen=True, slots=True)
class _MapOf:
    value: Callable[[object], Any]


@dataclass(frozen=True, slots=True)
class _Table:
    fields: Mapping[str, Any]
    required: bool = False


_ARTIFACT = _Table(
    {key: _name for key in ("group_id", "artifact_id", "version", "file")}, required=True
)

_SCHEMA = _Table(
    {
        "run": _Table(
            {
                "whitelist_prefix": _text,
                "timeout_bias": _integer,
                "timeout_coefficient": _number,
                "failing_tests": _ListOf(_name),
                "patches_pool": _text,
                "reset_jvm": _flag,
                "restart_jvm": _flag,
                "reset_interface": _flag,
                "debug": _flag,
                "profiler_only": _flag,
                "all_tests_file": _text,
                "arg_line": _text,
            }
        ),
        "plugin": _Table({"name": _text, "params": _MapOf(_scalar)}),
        "project": _Table(
            {
                "group_id": _text,
                "artifact_id": _text,
                "output_dir": _text,
                "test_output_dir": _text,
                "test_classpath_file": _text,
                "test_classpath": _ListOf(_name),
                "dependencies": _ListOf(_name),
            }
        ),
        "tool": _Table({"artifacts": _ListOf(_ARTIFACT)}),
        "plugins": _Table({"factories": _ListOf(_factory), "entry_points": _flag}),
        "engine": _Table({"entry": _reference}),
        "observability": _Table(
            {
                "log_level": _level,
                "log_dir": _name,
                "log_to_stdout": _flag,
                "redact_secrets": _flag,
            }
        ),
    }
)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def default_config() -> dict[str, Any]:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``; tables merge, everything else replaces."""

    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key in sorted(overlay):
        value = overlay[key]
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_config(current, value)
        elif isinstance(value, Mapping):
            merged[key] = merge_config({}, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(config: object) -> ConfigValidationResult:
    """Check ``config`` against the field table; issues are ordered by path."""

    issues: list[ConfigValidationIssue] = []
    checked = _walk(_SCHEMA, config, "", issues)
    if issues:
        return ConfigValidationResult(config=None, issues=tuple(issues))
    return ConfigValidationResult(config=checked, issues=())


def assert_valid_config(config: object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


# ---------------------------------------------------------------------------
# Walker
# ---------------------------------------------------------------------------


def _walk(spec: Any, value: object, path: str, issues: list[ConfigValidationIssue]) -> Any:
    if isinstance(spec, _ListOf):
        if not isinstance(value, (list, tuple)):
            issues.append(
                ConfigValidationIssue(path, f"expected array, got {type(value).__name__}")
            )
            return None
        return [
            _walk(spec.item, item, f"{path}[{index}]", issues)
            for index, item in enumerate(value)
        ]

    if isinstance(spec, (_MapOf, _Table)):
        if not isinstance(value, Mapping) or not all(isinstance(key, str) for key in value):
            issues.append(ConfigValidationIssue(path or "<root>", "expected a table"))
            return None
        if isinstance(spec, _MapOf):
            return {
                key: _walk(spec.value, value[key], _join(path, key), issues)
                for key in sorted(value)
            }
        checked: dict[str, Any] = {}
        expected = set(spec.fields) if spec.required else set()
        for key in sorted(set(value) | expected):
            if key not in spec.fields:
                issues.append(ConfigValidationIssue(_join(path, key), "unknown field"))
            elif key not in value:
                issues.append(ConfigValidationIssue(_join(path, key), "missing required field"))
            else:
                checked[key] = _walk(spec.fields[key], value[key], _join(path, key), issues)
        return checked

    try:
        return spec(value)
    except _Rejected as exc:
        issues.append(ConfigValidationIssue(path, str(exc)))
        return None


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


__all__ = [
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "LOG_LEVELS",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
