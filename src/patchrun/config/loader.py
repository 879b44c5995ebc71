"""
patchrun — effective configuration loader.

File: src/patchrun/config/loader.py
Last updated: 2026-10-18

Purpose
- Build the effective config of one invocation from the built-in defaults,
  ``patchrun.toml``, ``PATCHRUN_<SECTION>_<KEY>`` variables and ``--set`` overrides,
  in that order of increasing precedence.

Functional requirements
- Environment values are coerced to the type of the default they replace.
- ``[plugin.params]`` and ``[[tool.artifacts]]`` cannot be set from the environment.
- Relative paths resolve against the directory holding the config file.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any, Final

from patchrun.config.schema import DEFAULT_CONFIG, assert_valid_config, merge_config
from patchrun.errors import ConfigurationError

DEFAULT_CONFIG_FILE: Final[str] = "patchrun.toml"
ENV_PREFIX: Final[str] = "PATCHRUN_"

_TRUE_WORDS: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})

_PATH_KEYS: Final[tuple[tuple[str, str], ...]] = (
    ("run", "patches_pool"),
    ("run", "all_tests_file"),
    ("project", "output_dir"),
    ("project", "test_output_dir"),
    ("project", "test_classpath_file"),
    ("observability", "log_dir"),
)
_PATH_LIST_KEYS: Final[tuple[tuple[str, str], ...]] = (
    ("project", "test_classpath"),
    ("project", "dependencies"),
)


class ConfigLoadError(ConfigurationError):
    """Raised when config cannot be read or an override cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the validated effective config.

    Without ``config_path`` a ``patchrun.toml`` in the working directory is used when
    present; an explicit path that does not exist is an error.
    """

    if config_path is None:
        path = Path.cwd() / DEFAULT_CONFIG_FILE
        file_payload = _read_toml(path) if path.is_file() else {}
    else:
        path = Path(config_path).expanduser()
        if not path.is_file():
            raise ConfigLoadError(f"config file not found: {path}")
        file_payload = _read_toml(path)

    # File mistakes surface before any env or CLI value is coerced.
    effective = assert_valid_config(merge_config(DEFAULT_CONFIG, file_payload))
    effective = merge_config(effective, _env_layer(os.environ if environ is None else environ))
    effective = merge_config(effective, _dotted_layer(cli_overrides or {}))

    return _resolve_paths(assert_valid_config(effective), path.resolve().parent)


def parse_override_assignments(assignments: Sequence[str]) -> dict[str, object]:
    """Parse ``section.key=value`` pairs; a value that is not a TOML literal stays text."""

    parsed: dict[str, object] = {}
    for assignment in assignments:
        key, equals, raw = assignment.partition("=")
        if not equals or not key.strip():
            raise ConfigLoadError(f"invalid override {assignment!r}; expected section.key=value")
        try:
            value: object = tomllib.loads(f"v = {raw.strip()}")["v"]
        except tomllib.TOMLDecodeError:
            value = raw.strip()
        parsed[key.strip()] = value
    return parsed


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_fields() -> Iterator[tuple[str, str, object]]:
    for section, fields in DEFAULT_CONFIG.items():
        if section == "tool":
            continue
        for key, default in fields.items():
            if not isinstance(default, Mapping):
                yield section, key, default


def _env_layer(environ: Mapping[str, str]) -> dict[str, dict[str, object]]:
    layer: dict[str, dict[str, object]] = {}
    for section, key, default in _env_fields():
        variable = f"{ENV_PREFIX}{section}_{key}".upper()
        if variable in environ:
            layer.setdefault(section, {})[key] = _coerce(variable, environ[variable], default)
    return layer


def _coerce(variable: str, raw: str, default: object) -> object:
    text = raw.strip()
    if isinstance(default, bool):
        if text.lower() in _TRUE_WORDS:
            return True
        if text.lower() in _FALSE_WORDS:
            return False
        raise ConfigLoadError(
            f"{variable}={raw!r} must be a boolean (true/false/yes/no/on/off/1/0)"
        )
    if isinstance(default, list):
        return [item.strip() for item in text.split(",") if item.strip()]
    if isinstance(default, (int, float)):
        try:
            return type(default)(text)
        except ValueError as exc:
            kind = "an integer" if isinstance(default, int) else "a number"
            raise ConfigLoadError(f"{variable}={raw!r} must be {kind}") from exc
    return text


def _dotted_layer(overrides: Mapping[str, object]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for dotted in sorted(overrides):
        *parents, leaf = [part for part in dotted.split(".") if part] or [""]
        if not leaf:
            raise ConfigLoadError(f"invalid override key {dotted!r}")
        node = layer
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = overrides[dotted]
    return layer


def _resolve_paths(config: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    def resolve(raw: str) -> str:
        candidate = Path(os.path.expandvars(raw)).expanduser()
        return Path(os.path.normpath(base_dir / candidate)).as_posix()

    for section, key in _PATH_KEYS:
        if config[section][key]:
            config[section][key] = resolve(config[section][key])
    for section, key in _PATH_LIST_KEYS:
        config[section][key] = [resolve(item) for item in config[section][key]]
    for artifact in config["tool"]["artifacts"]:
        artifact["file"] = resolve(artifact["file"])
    return config


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "load_config",
    "parse_override_assignments",
]
