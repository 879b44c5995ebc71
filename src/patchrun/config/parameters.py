"""
patchrun — run parameter validation

File: src/patchrun/config/parameters.py
Last updated: 2026-10-18

Purpose
- Turn the effective configuration plus the process environment into an immutable
  ``ValidatedConfig``, or fail with ``ConfigurationError`` before any classpath or
  plugin work starts.

Functional requirements
- ``JAVA_HOME`` must name an existing directory.
- Negative timeout bias or coefficient is fatal; a small bias only warns.
- An empty whitelist prefix falls back to the project group id with a warning.
- Failing test names are sanitized to ``package.Class.method`` form.
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from patchrun.constants import (
    DEFAULT_PATCHES_POOL,
    DEFAULT_TIMEOUT_BIAS,
    DEFAULT_TIMEOUT_COEFFICIENT,
    JAVA_HOME_ENV,
    JVM_ARG_DELIMITER,
    MIN_USABLE_TIMEOUT_BIAS,
)
from patchrun.errors import ConfigurationError
from patchrun.plugins.base import MatchCriteria


@dataclass(frozen=True, slots=True)
class ValidatedConfig:
    """Sanitized run parameters; created once, then owned by the execution context."""

    jre_home: Path
    whitelist_prefix: str
    failing_tests: tuple[str, ...]
    infer_failing_tests: bool
    timeout_bias: int
    timeout_coefficient: float
    patches_pool: Path
    reset_jvm: bool = False
    restart_jvm: bool = False
    reset_interface: bool = False
    debug: bool = False
    profiler_only: bool = False
    all_tests_file: Path | None = None
    arg_line: str | None = None
    plugin_criteria: MatchCriteria | None = None

    @property
    def effective_reset_jvm(self) -> bool:
        # A fresh JVM per patch leaves nothing to reset.
        return self.reset_jvm and not self.restart_jvm

    @property
    def jvm_args(self) -> tuple[str, ...]:
        if not self.arg_line:
            return ()
        return tuple(
            part.strip() for part in self.arg_line.split(JVM_ARG_DELIMITER) if part.strip()
        )


def sanitize_test_name(name: str) -> str:
    """Normalize a test name to ``package.Class.method``.

    Accepted spellings: ``pkg.Class::method`` (Defects4J), ``pkg.Class:method`` and the
    JUnit display form ``method(pkg.Class)``.
    """

    sanitized = name.strip().replace("::", ".").replace(":", ".")
    open_paren = sanitized.find("(")
    if open_paren > 0 and sanitized.endswith(")"):
        method = sanitized[:open_paren].strip()
        owner = sanitized[open_paren + 1 : -1].strip()
        if method and owner:
            sanitized = f"{owner}.{method}"
    return sanitized


def validate_parameters(
    config: Mapping[str, Any],
    *,
    environ: Mapping[str, str] | None = None,
    logger: Any | None = None,
) -> ValidatedConfig:
    """Validate run parameters in a fixed order and return the frozen snapshot."""

    log = logger if logger is not None else structlog.get_logger(__name__)
    env_map = os.environ if environ is None else environ
    run = _section(config, "run")
    project = _section(config, "project")

    jre_home = resolve_jre_home(env_map)

    whitelist_prefix = str(run.get("whitelist_prefix", "")).strip()
    if not whitelist_prefix:
        log.warning("whitelist_prefix_missing")
        whitelist_prefix = str(project.get("group_id", "")).strip()
        if not whitelist_prefix:
            raise ConfigurationError(
                "Missing whiteListPrefix and project.group_id is not set to default it"
            )
        log.info("whitelist_prefix_defaulted", whitelist_prefix=whitelist_prefix)

    timeout_bias = run.get("timeout_bias", DEFAULT_TIMEOUT_BIAS)
    if isinstance(timeout_bias, bool) or not isinstance(timeout_bias, int):
        raise ConfigurationError(f"Invalid timeout bias: {timeout_bias!r}")
    if timeout_bias < 0:
        raise ConfigurationError(f"Invalid timeout bias: {timeout_bias}")
    if timeout_bias < MIN_USABLE_TIMEOUT_BIAS:
        log.warning(
            "timeout_bias_small", timeout_bias=timeout_bias, minimum=MIN_USABLE_TIMEOUT_BIAS
        )

    timeout_coefficient = run.get("timeout_coefficient", DEFAULT_TIMEOUT_COEFFICIENT)
    if isinstance(timeout_coefficient, bool) or not isinstance(timeout_coefficient, (int, float)):
        raise ConfigurationError(f"Invalid timeout coefficient: {timeout_coefficient!r}")
    if not math.isfinite(timeout_coefficient) or timeout_coefficient < 0:
        raise ConfigurationError(f"Invalid timeout coefficient: {timeout_coefficient}")

    raw_failing_tests = run.get("failing_tests") or []
    infer_failing_tests = len(raw_failing_tests) == 0
    failing_tests = tuple(sanitize_test_name(name) for name in raw_failing_tests)

    all_tests_file: Path | None = None
    raw_all_tests = str(run.get("all_tests_file", "") or "").strip()
    if raw_all_tests:
        all_tests_file = Path(raw_all_tests)
        if not all_tests_file.is_file():
            raise ConfigurationError(f"all-tests manifest not found: {all_tests_file}")

    arg_line = str(run.get("arg_line", "") or "").strip() or None

    return ValidatedConfig(
        jre_home=jre_home,
        whitelist_prefix=whitelist_prefix,
        failing_tests=failing_tests,
        infer_failing_tests=infer_failing_tests,
        timeout_bias=timeout_bias,
        timeout_coefficient=float(timeout_coefficient),
        patches_pool=Path(str(run.get("patches_pool") or DEFAULT_PATCHES_POOL)),
        reset_jvm=bool(run.get("reset_jvm", False)),
        restart_jvm=bool(run.get("restart_jvm", False)),
        reset_interface=bool(run.get("reset_interface", False)),
        debug=bool(run.get("debug", False)),
        profiler_only=bool(run.get("profiler_only", False)),
        all_tests_file=all_tests_file,
        arg_line=arg_line,
        plugin_criteria=plugin_criteria_from_config(config),
    )


def resolve_jre_home(environ: Mapping[str, str]) -> Path:
    raw = environ.get(JAVA_HOME_ENV, "").strip()
    if not raw:
        raise ConfigurationError(f"{JAVA_HOME_ENV} is not set")
    jre_home = Path(raw).expanduser()
    if not jre_home.is_dir():
        raise ConfigurationError(f"Invalid {JAVA_HOME_ENV}: {jre_home} is not a directory")
    return jre_home.absolute()


def plugin_criteria_from_config(config: Mapping[str, Any]) -> MatchCriteria | None:
    """Build match criteria from ``[plugin]``; an empty name means no plugin requested."""

    plugin = _section(config, "plugin")
    name = str(plugin.get("name", "") or "").strip()
    if not name:
        return None
    params = plugin.get("params") or {}
    try:
        return MatchCriteria(name=name, params=dict(params))
    except ValueError as exc:
        raise ConfigurationError(f"invalid plugin request: {exc}") from exc


def _section(config: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    section = config.get(key, {})
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"config section [{key}] must be a table")
    return section


__all__ = [
    "ValidatedConfig",
    "plugin_criteria_from_config",
    "resolve_jre_home",
    "sanitize_test_name",
    "validate_parameters",
]
