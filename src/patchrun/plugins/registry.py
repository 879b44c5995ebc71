"""
patchrun — patch generation plugin registry

File: src/patchrun/plugins/registry.py
Last updated: 2026-10-18

Purpose
- Explicit registry mapping normalized plugin names to zero-argument factories.

What should be included in this file
- Decorator registration for built-in plugins.
- Configuration-driven loading of ``module:attribute`` references.
- Entry-point loading for third-party distributions.

Functional requirements
- Registration order is preserved per name; it is the candidate order at lookup time.
- Registering the same factory twice under one name is a no-op.
- Factories are not called here; construction happens in the locator.
"""

from __future__ import annotations

import importlib
import inspect
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from importlib.metadata import entry_points
from typing import Any, Literal, TypeVar

import structlog

from patchrun.constants import PLUGIN_ENTRY_POINT_GROUP
from patchrun.errors import ConfigurationError, PluginConstructionError
from patchrun.plugins.base import PluginFactory, normalize_plugin_name

PluginSource = Literal["builtin", "config", "entry_point", "external"]

PluginType = TypeVar("PluginType", bound=Callable[[], object])


@dataclass(frozen=True, slots=True)
class PluginRegistration:
    name: str
    source: PluginSource
    factory: PluginFactory
    order: int


class PluginRegistry:
    """Ordered plugin factory registry keyed by normalized plugin name."""

    def __init__(self) -> None:
        self._registrations: dict[str, list[PluginRegistration]] = {}
        self._counter = 0

    def register(
        self,
        name: str,
        factory: PluginFactory,
        *,
        source: PluginSource = "external",
    ) -> PluginRegistration:
        normalized = normalize_plugin_name(name)
        if not callable(factory):
            raise ValueError(f"factory for plugin {name!r} must be callable")
        _validate_zero_arg_factory(factory, plugin_name=normalized)

        bucket = self._registrations.setdefault(normalized, [])
        for existing in bucket:
            if existing.factory is factory:
                return existing

        registration = PluginRegistration(
            name=normalized, source=source, factory=factory, order=self._counter
        )
        self._counter += 1
        bucket.append(registration)
        return registration

    def candidates(self, name: str) -> tuple[PluginRegistration, ...]:
        return tuple(self._registrations.get(normalize_plugin_name(name), ()))

    def contains(self, name: str) -> bool:
        return bool(self.candidates(name))

    def registered_names(self) -> tuple[str, ...]:
        return tuple(sorted(key for key, bucket in self._registrations.items() if bucket))

    def registrations(self) -> tuple[PluginRegistration, ...]:
        ordered = [item for bucket in self._registrations.values() for item in bucket]
        return tuple(sorted(ordered, key=lambda item: item.order))

    def load_references(self, references: Iterable[str]) -> None:
        """Register factories named by ``module:attribute`` references."""

        for reference in references:
            factory = resolve_reference(reference)
            plugin_name = getattr(factory, "plugin_name", None)
            if not isinstance(plugin_name, str) or not plugin_name.strip():
                raise ConfigurationError(
                    f"plugin factory {reference!r} does not declare a 'plugin_name'"
                )
            self.register(plugin_name, factory, source="config")

    def load_entry_points(self, group: str = PLUGIN_ENTRY_POINT_GROUP) -> int:
        """Register every factory advertised under ``group``; returns the number loaded.

        An entry point that cannot be imported, or whose factory needs arguments, is a
        packaging defect of the distribution and raises ``PluginConstructionError``.
        """

        loaded = 0
        for entry_point in sorted(entry_points(group=group), key=lambda item: item.name):
            try:
                self.register(entry_point.name, entry_point.load(), source="entry_point")
            except Exception as exc:
                structlog.get_logger(__name__).error(
                    "plugin_entry_point_failed",
                    plugin=entry_point.name,
                    group=group,
                    error=f"{type(exc).__name__}: {exc}",
                )
                raise PluginConstructionError(entry_point.name, exc) from exc
            loaded += 1
        return loaded


DEFAULT_PLUGIN_REGISTRY = PluginRegistry()


def register_plugin(
    name: str,
    *,
    registry: PluginRegistry | None = None,
) -> Callable[[PluginType], PluginType]:
    """Decorator that registers a zero-argument plugin class or factory under ``name``."""

    target = registry if registry is not None else DEFAULT_PLUGIN_REGISTRY
    normalized = normalize_plugin_name(name)

    def decorator(factory: PluginType) -> PluginType:
        factory.plugin_name = normalized  # type: ignore[attr-defined]
        target.register(normalized, factory, source="builtin")  # type: ignore[arg-type]
        return factory

    return decorator


def load_configured_plugins(
    config: Mapping[str, Any],
    *,
    registry: PluginRegistry | None = None,
) -> PluginRegistry:
    """Populate ``registry`` from ``[plugins] factories`` and, when enabled, entry points."""

    target = registry if registry is not None else DEFAULT_PLUGIN_REGISTRY
    section = config.get("plugins", {})
    if not isinstance(section, Mapping):
        raise ConfigurationError("config section [plugins] must be a table")
    target.load_references(section.get("factories") or ())
    if section.get("entry_points", True):
        target.load_entry_points()
    return target


def resolve_reference(reference: str) -> PluginFactory:
    """Import ``module:attribute`` and return the referenced callable."""

    module_name, separator, attribute_path = reference.strip().partition(":")
    if not separator or not module_name or not attribute_path:
        raise ConfigurationError(f"invalid reference {reference!r}; expected 'module:attribute'")
    try:
        target: object = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"unable to import {module_name!r} for {reference!r}") from exc
    for part in attribute_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise ConfigurationError(f"{reference!r} does not resolve: missing {part!r}") from exc
    if not callable(target):
        raise ConfigurationError(f"{reference!r} does not resolve to a callable")
    return target  # type: ignore[return-value]


def _validate_zero_arg_factory(factory: Callable[..., object], *, plugin_name: str) -> None:
    try:
        signature = inspect.signature(factory)
    except (TypeError, ValueError):
        return
    required = [
        parameter
        for parameter in signature.parameters.values()
        if parameter.default is inspect.Parameter.empty
        and parameter.kind
        not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]
    if required:
        raise ValueError(f"plugin {plugin_name!r} factory must be callable without arguments")


__all__ = [
    "DEFAULT_PLUGIN_REGISTRY",
    "PluginRegistration",
    "PluginRegistry",
    "PluginSource",
    "load_configured_plugins",
    "register_plugin",
    "resolve_reference",
]
