"""Selects the patch generation plugin a run hands control to."""

from __future__ import annotations

from typing import Any

import structlog

from patchrun.errors import PluginConstructionError, PluginNotFoundError
from patchrun.plugins.base import MatchCriteria, PatchGenerationPlugin
from patchrun.plugins.registry import DEFAULT_PLUGIN_REGISTRY, PluginRegistry


def locate_plugin(
    criteria: MatchCriteria | None,
    *,
    registry: PluginRegistry | None = None,
    logger: Any | None = None,
) -> PatchGenerationPlugin | None:
    """Return the first registered plugin whose descriptor satisfies ``criteria``.

    ``None`` criteria means no plugin was requested; nothing is constructed and ``None``
    is returned. A factory that raises aborts the whole search with
    ``PluginConstructionError``.
    """

    if criteria is None:
        return None

    log = logger if logger is not None else structlog.get_logger(__name__)
    source = registry if registry is not None else DEFAULT_PLUGIN_REGISTRY

    for registration in source.candidates(criteria.name):
        try:
            plugin = registration.factory()
        except Exception as exc:
            log.error(
                "plugin_construction_failed",
                plugin=registration.name,
                source=registration.source,
                error=f"{type(exc).__name__}: {exc}",
            )
            raise PluginConstructionError(registration.name, exc) from exc

        if not isinstance(plugin, PatchGenerationPlugin):
            raise PluginConstructionError(
                registration.name,
                TypeError(f"factory returned {type(plugin).__name__}, not a plugin"),
            )

        if criteria.matches(plugin.descriptor):
            log.info(
                "plugin_selected",
                plugin=plugin.descriptor.name,
                description=plugin.descriptor.description,
                source=registration.source,
            )
            return plugin

    raise PluginNotFoundError(criteria, known=source.registered_names())


__all__ = ["locate_plugin"]
