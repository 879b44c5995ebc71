"""Wire the classpath and runtime layers behind the shared LRU cache."""

from __future__ import annotations

from collections.abc import Iterable

from patchrun.bytecode.cache import CachingByteSource
from patchrun.bytecode.layers import (
    ChainedByteSource,
    ClasspathLayer,
    RuntimeClassLoader,
    RuntimeLayer,
    RuntimeLookup,
)
from patchrun.classpath.model import ClasspathSet, RootLike
from patchrun.constants import BYTE_SOURCE_CACHE_SIZE


def create_byte_source(
    classpath: ClasspathSet | Iterable[RootLike],
    *,
    runtime_loader: RuntimeClassLoader | RuntimeLookup | None = None,
    capacity: int = BYTE_SOURCE_CACHE_SIZE,
) -> CachingByteSource:
    """Classpath roots first, then the runtime loader; results are cached per class name."""

    loader = runtime_loader if runtime_loader is not None else RuntimeClassLoader.from_context()
    chain = ChainedByteSource([ClasspathLayer(classpath), RuntimeLayer(loader)])
    return CachingByteSource(chain, capacity=capacity)


__all__ = ["create_byte_source"]
