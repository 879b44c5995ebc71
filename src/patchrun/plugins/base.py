"""
patchrun — patch generation plugin contract

File: src/patchrun/plugins/base.py
Last updated: 2026-10-18

Purpose
- Defines what a patch generation plugin exposes (a descriptor plus a ``generate`` hook)
  and how a user request is matched against it.

Functional requirements
- Plugin names compare case-insensitively.
- Parameters are read-only after construction; descriptors and criteria are hashable.
- Parameter values compare as text so TOML integers match string descriptors
  (``bugId = 112`` matches ``{"bugId": "112"}``).
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Protocol, runtime_checkable

PluginParamValue = str | int | float | bool


def normalize_plugin_name(name: str) -> str:
    """Canonical registry key for a plugin name."""

    if not isinstance(name, str):
        raise ValueError(f"plugin name must be a string, got {type(name).__name__}")
    normalized = name.strip().casefold()
    if not normalized:
        raise ValueError("plugin name must not be empty")
    return normalized


def param_text(value: PluginParamValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


def _normalize_params(
    params: Mapping[str, PluginParamValue], field_name: str
) -> Mapping[str, str]:
    normalized: dict[str, str] = {}
    for key, value in params.items():
        if not isinstance(key, str) or not key.strip():
            raise ValueError(f"{field_name}: parameter keys must be non-empty strings")
        stripped = key.strip()
        if stripped in normalized:
            raise ValueError(f"{field_name}: duplicate parameter key {stripped!r}")
        normalized[stripped] = param_text(value)
    return MappingProxyType(normalized)


def _params_key(params: Mapping[str, str]) -> tuple[tuple[str, str], ...]:
    return tuple(sorted(params.items()))


@dataclass(frozen=True, slots=True)
class PluginDescriptor:
    """Name, declared parameters and description of a patch generation plugin."""

    name: str
    params: Mapping[str, str] = field(default_factory=dict)
    description: str = ""

    def __post_init__(self) -> None:
        normalize_plugin_name(self.name)
        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(
            self, "params", _normalize_params(self.params, "PluginDescriptor.params")
        )
        object.__setattr__(self, "description", str(self.description).strip())

    @property
    def normalized_name(self) -> str:
        return normalize_plugin_name(self.name)

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.normalized_name, _params_key(self.params)))


@dataclass(frozen=True, slots=True)
class MatchCriteria:
    """A user's request for a plugin: name plus required parameter pairs."""

    name: str
    params: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        normalize_plugin_name(self.name)
        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "params", _normalize_params(self.params, "MatchCriteria.params"))

    @property
    def normalized_name(self) -> str:
        return normalize_plugin_name(self.name)

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.normalized_name, _params_key(self.params)))

    def matches(self, descriptor: PluginDescriptor) -> bool:
        if descriptor.normalized_name != self.normalized_name:
            return False
        return all(
            key in descriptor.params and descriptor.params[key] == value
            for key, value in self.params.items()
        )

    def __str__(self) -> str:
        if not self.params:
            return self.name
        rendered = ", ".join(f"{key}={self.params[key]}" for key in sorted(self.params))
        return f"{self.name} ({rendered})"


@runtime_checkable
class PatchGenerationPlugin(Protocol):
    """Strategy that fills the patches pool with candidate patches for the engine."""

    @property
    def descriptor(self) -> PluginDescriptor: ...

    def generate(self, patches_pool: Path, params: Mapping[str, str]) -> None: ...


PluginFactory = Callable[[], PatchGenerationPlugin]


__all__ = [
    "MatchCriteria",
    "PatchGenerationPlugin",
    "PluginDescriptor",
    "PluginFactory",
    "PluginParamValue",
    "normalize_plugin_name",
    "param_text",
]
