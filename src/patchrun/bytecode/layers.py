"""
patchrun — class byte lookup layers

File: src/patchrun/bytecode/layers.py
Last updated: 2026-10-18

Purpose
- Lookup strategies that each answer ``fetch(class_name) -> bytes | None`` and a chain
  that asks them in order.

What should be included in this file
- ``ClasspathLayer``: scans classpath roots (directories and jar/zip archives).
- ``RuntimeLayer``: asks the live runtime loader, for classes that exist only in-process.
- ``ChainedByteSource``: first non-empty answer wins.

Functional requirements
- Dotted (``com.example.Foo$Bar``) and slashed (``com/example/Foo$Bar``) names resolve
  to the same resource.
- Missing or unreadable roots are skipped, never fatal.
"""

from __future__ import annotations

import os
import threading
import zipfile
from collections.abc import Callable, Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import structlog

from patchrun.classpath.model import ClasspathRoot, ClasspathSet, RootKind, RootLike
from patchrun.constants import CLASS_FILE_SUFFIX, RUNTIME_CLASSPATH_ENV


@runtime_checkable
class ByteSourceLayer(Protocol):
    def fetch(self, class_name: str) -> bytes | None: ...


def normalize_class_name(class_name: str) -> str:
    """Dotted binary name used as the cache key: ``com.example.Foo$Bar``."""

    if not isinstance(class_name, str):
        raise TypeError(f"class name must be a string, got {type(class_name).__name__}")
    normalized = class_name.strip()
    if normalized.endswith(CLASS_FILE_SUFFIX):
        normalized = normalized[: -len(CLASS_FILE_SUFFIX)]
    normalized = normalized.replace("/", ".").strip(".")
    if not normalized:
        raise ValueError("class name must not be empty")
    return normalized


def class_resource_name(class_name: str) -> str:
    """Archive/directory relative resource path: ``com/example/Foo$Bar.class``."""

    return normalize_class_name(class_name).replace(".", "/") + CLASS_FILE_SUFFIX


class ClasspathLayer:
    """Reads class bytes from classpath roots in order."""

    def __init__(
        self, classpath: ClasspathSet | Iterable[RootLike], *, logger: Any | None = None
    ) -> None:
        if isinstance(classpath, ClasspathSet):
            self._roots = classpath.roots
        else:
            self._roots = tuple(ClasspathRoot.of(entry) for entry in classpath)
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def roots(self) -> tuple[ClasspathRoot, ...]:
        return self._roots

    def fetch(self, class_name: str) -> bytes | None:
        resource = class_resource_name(class_name)
        for root in self._roots:
            data = self._read(root, resource)
            if data is not None:
                return data
        return None

    def _read(self, root: ClasspathRoot, resource: str) -> bytes | None:
        kind = root.kind
        try:
            if kind is RootKind.DIRECTORY:
                candidate = root.path.joinpath(*resource.split("/"))
                if candidate.is_file():
                    return candidate.read_bytes()
                return None
            if kind is RootKind.ARCHIVE:
                with zipfile.ZipFile(root.path) as archive:
                    try:
                        return archive.read(resource)
                    except KeyError:
                        return None
        except (OSError, zipfile.BadZipFile) as exc:
            self._logger.debug(
                "classpath_root_unreadable",
                root=str(root),
                error=f"{type(exc).__name__}: {exc}",
            )
        return None


class RuntimeClassLoader:
    """Classes observable through the live tool process.

    Holds bytes defined at runtime (generated classes) and the tool process's own
    classpath roots. Defined classes shadow root lookups.
    """

    def __init__(
        self,
        roots: Iterable[RootLike] = (),
        *,
        defined: Mapping[str, bytes] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._defined: dict[str, bytes] = {}
        self._layer = ClasspathLayer(tuple(roots))
        for name, data in (defined or {}).items():
            self.define_class(name, data)

    @classmethod
    def from_context(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        jre_home: Path | None = None,
    ) -> RuntimeClassLoader:
        env_map = os.environ if environ is None else environ
        roots: list[RootLike] = [
            entry.strip()
            for entry in env_map.get(RUNTIME_CLASSPATH_ENV, "").split(os.pathsep)
            if entry.strip()
        ]
        if jre_home is not None:
            # Pre-module runtimes ship their bootstrap classes as one archive.
            for candidate in (jre_home / "lib" / "rt.jar", jre_home / "jre" / "lib" / "rt.jar"):
                if candidate.is_file():
                    roots.append(candidate)
        return cls(roots)

    @property
    def roots(self) -> tuple[ClasspathRoot, ...]:
        return self._layer.roots

    def define_class(self, class_name: str, data: bytes) -> None:
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError(f"class bytes must be bytes, got {type(data).__name__}")
        with self._lock:
            self._defined[normalize_class_name(class_name)] = bytes(data)

    def forget_class(self, class_name: str) -> None:
        with self._lock:
            self._defined.pop(normalize_class_name(class_name), None)

    def defined_classes(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._defined))

    def load_bytes(self, class_name: str) -> bytes | None:
        key = normalize_class_name(class_name)
        with self._lock:
            data = self._defined.get(key)
        if data is not None:
            return data
        return self._layer.fetch(key)


RuntimeLookup = Callable[[str], "bytes | None"]


class RuntimeLayer:
    """Falls back to whatever the live runtime can see."""

    def __init__(self, loader: RuntimeClassLoader | RuntimeLookup) -> None:
        if isinstance(loader, RuntimeClassLoader):
            self._lookup: RuntimeLookup = loader.load_bytes
        elif callable(loader):
            self._lookup = loader
        else:
            raise TypeError("runtime loader must be a RuntimeClassLoader or a callable")

    def fetch(self, class_name: str) -> bytes | None:
        return self._lookup(normalize_class_name(class_name))


class ChainedByteSource:
    """Asks each layer in order and returns the first non-empty answer."""

    def __init__(self, layers: Sequence[ByteSourceLayer]) -> None:
        if not layers:
            raise ValueError("at least one byte source layer is required")
        self._layers = tuple(layers)

    @property
    def layers(self) -> tuple[ByteSourceLayer, ...]:
        return self._layers

    def fetch(self, class_name: str) -> bytes | None:
        for layer in self._layers:
            data = layer.fetch(class_name)
            if data is not None:
                return data
        return None


__all__ = [
    "ByteSourceLayer",
    "ChainedByteSource",
    "ClasspathLayer",
    "RuntimeClassLoader",
    "RuntimeLayer",
    "RuntimeLookup",
    "class_resource_name",
    "normalize_class_name",
]
