"""Patch generation plugin contract, registry and locator."""

from patchrun.plugins.base import (
    MatchCriteria,
    PatchGenerationPlugin,
    PluginDescriptor,
    PluginFactory,
    normalize_plugin_name,
)
from patchrun.plugins.locator import locate_plugin
from patchrun.plugins.registry import (
    DEFAULT_PLUGIN_REGISTRY,
    PluginRegistration,
    PluginRegistry,
    load_configured_plugins,
    register_plugin,
    resolve_reference,
)

__all__ = [
    "DEFAULT_PLUGIN_REGISTRY",
    "MatchCriteria",
    "PatchGenerationPlugin",
    "PluginDescriptor",
    "PluginFactory",
    "PluginRegistration",
    "PluginRegistry",
    "load_configured_plugins",
    "locate_plugin",
    "normalize_plugin_name",
    "register_plugin",
    "resolve_reference",
]
