"""Stable constants shared across patchrun components."""

from __future__ import annotations

from typing import Final

# Byte source cache.
BYTE_SOURCE_CACHE_SIZE: Final[int] = 200

# Run parameter defaults.
DEFAULT_TIMEOUT_BIAS: Final[int] = 2000
DEFAULT_TIMEOUT_COEFFICIENT: Final[float] = 0.5
MIN_USABLE_TIMEOUT_BIAS: Final[int] = 1000
DEFAULT_PATCHES_POOL: Final[str] = "patches-pool"

# Environment.
JAVA_HOME_ENV: Final[str] = "JAVA_HOME"
RUNTIME_CLASSPATH_ENV: Final[str] = "CLASSPATH"

# Identity of the tool's own plugin artifact; every other plugin dependency is dropped
# from the assembled classpath.
PLUGIN_ARTIFACT_GROUP_ID: Final[str] = "io.patchrun"
PLUGIN_ARTIFACT_ARTIFACT_ID: Final[str] = "patchrun-plugin"

# Entry-point group scanned for third-party patch-generation plugins.
PLUGIN_ENTRY_POINT_GROUP: Final[str] = "patchrun.plugins"

ARCHIVE_SUFFIXES: Final[tuple[str, ...]] = (".jar", ".zip")
CLASS_FILE_SUFFIX: Final[str] = ".class"
JVM_ARG_DELIMITER: Final[str] = ";"

__all__ = [
    "ARCHIVE_SUFFIXES",
    "BYTE_SOURCE_CACHE_SIZE",
    "CLASS_FILE_SUFFIX",
    "DEFAULT_PATCHES_POOL",
    "DEFAULT_TIMEOUT_BIAS",
    "DEFAULT_TIMEOUT_COEFFICIENT",
    "JAVA_HOME_ENV",
    "JVM_ARG_DELIMITER",
    "MIN_USABLE_TIMEOUT_BIAS",
    "PLUGIN_ARTIFACT_ARTIFACT_ID",
    "PLUGIN_ARTIFACT_GROUP_ID",
    "PLUGIN_ENTRY_POINT_GROUP",
    "RUNTIME_CLASSPATH_ENV",
]
