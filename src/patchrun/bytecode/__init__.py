"""Class byte lookup: classpath and runtime layers behind a bounded LRU cache."""

from __future__ import annotations

from patchrun.bytecode.cache import CacheStats, CachingByteSource
from patchrun.bytecode.layers import (
    ByteSourceLayer,
    ChainedByteSource,
    ClasspathLayer,
    RuntimeClassLoader,
    RuntimeLayer,
    RuntimeLookup,
    class_resource_name,
    normalize_class_name,
)
from patchrun.bytecode.resolver import create_byte_source

__all__ = [
    "ByteSourceLayer",
    "CacheStats",
    "CachingByteSource",
    "ChainedByteSource",
    "ClasspathLayer",
    "RuntimeClassLoader",
    "RuntimeLayer",
    "RuntimeLookup",
    "class_resource_name",
    "create_byte_source",
    "normalize_class_name",
]
