"""Typed failure signals shared by every patchrun component."""

from __future__ import annotations


class PatchRunError(Exception):
    """Base class for all fatal patchrun failures."""


class ConfigurationError(PatchRunError, ValueError):
    """Raised when an environment or parameter value is missing or invalid."""


class ClasspathResolutionWarning(UserWarning):
    """Emitted when the project classpath is only partially available."""


class PluginConstructionError(PatchRunError):
    """Raised when a registered plugin factory cannot produce an instance."""

    def __init__(self, plugin_name: str, cause: BaseException) -> None:
        self.plugin_name = plugin_name
        super().__init__(
            f"unable to construct patch generation plugin {plugin_name!r}: "
            f"{type(cause).__name__}: {cause}"
        )


class PluginNotFoundError(PatchRunError, LookupError):
    """Raised when no registered plugin matches the requested criteria."""

    def __init__(self, criteria: object, *, known: tuple[str, ...] = ()) -> None:
        self.criteria = criteria
        self.known = known
        message = (
            f"No plugin with the name {criteria} found. This is perhaps a registration issue."
        )
        if known:
            message = f"{message} Registered plugins: [{', '.join(known)}]"
        super().__init__(message)


class ExecutionEngineError(PatchRunError):
    """Raised when the external validation engine fails a run."""


__all__ = [
    "ClasspathResolutionWarning",
    "ConfigurationError",
    "ExecutionEngineError",
    "PatchRunError",
    "PluginConstructionError",
    "PluginNotFoundError",
]
