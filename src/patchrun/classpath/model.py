"""Classpath roots and the ordered, duplicate-free classpath handed to the engine."""

from __future__ import annotations

import os
import zipfile
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import overload

from patchrun.constants import ARCHIVE_SUFFIXES


class RootKind(StrEnum):
    DIRECTORY = "directory"
    ARCHIVE = "archive"
    MISSING = "missing"


@dataclass(frozen=True, slots=True)
class ClasspathRoot:
    """A directory or archive contributing class files; identity is the absolute path."""

    path: Path

    def __post_init__(self) -> None:
        raw = os.fspath(self.path)
        if not raw.strip():
            raise ValueError("classpath root path must not be empty")
        absolute = Path(os.path.normpath(os.path.abspath(os.path.expanduser(raw))))
        object.__setattr__(self, "path", absolute)

    @classmethod
    def of(cls, entry: str | os.PathLike[str] | ClasspathRoot) -> ClasspathRoot:
        if isinstance(entry, ClasspathRoot):
            return entry
        return cls(Path(entry))

    @property
    def kind(self) -> RootKind:
        if self.path.is_dir():
            return RootKind.DIRECTORY
        if self.path.is_file() and (
            self.path.suffix.lower() in ARCHIVE_SUFFIXES or zipfile.is_zipfile(self.path)
        ):
            return RootKind.ARCHIVE
        return RootKind.MISSING

    def __str__(self) -> str:
        return str(self.path)


RootLike = str | os.PathLike[str] | ClasspathRoot


class ClasspathSet(Sequence[ClasspathRoot]):
    """Project roots followed by plugin roots, each group in caller order, no duplicates.

    A path seen earlier wins; later occurrences, including a plugin root that repeats a
    project root, are dropped.
    """

    __slots__ = ("_project_count", "_roots")

    def __init__(
        self,
        project_roots: Iterable[RootLike] = (),
        plugin_roots: Iterable[RootLike] = (),
    ) -> None:
        seen: set[Path] = set()
        project = _unique_roots(project_roots, seen)
        plugin = _unique_roots(plugin_roots, seen)
        self._roots: tuple[ClasspathRoot, ...] = (*project, *plugin)
        self._project_count = len(project)

    @property
    def project_roots(self) -> tuple[ClasspathRoot, ...]:
        return self._roots[: self._project_count]

    @property
    def plugin_roots(self) -> tuple[ClasspathRoot, ...]:
        return self._roots[self._project_count :]

    @property
    def roots(self) -> tuple[ClasspathRoot, ...]:
        return self._roots

    def paths(self) -> tuple[Path, ...]:
        return tuple(root.path for root in self._roots)

    def as_path_string(self, separator: str = os.pathsep) -> str:
        return separator.join(str(root) for root in self._roots)

    @overload
    def __getitem__(self, index: int) -> ClasspathRoot: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[ClasspathRoot, ...]: ...

    def __getitem__(self, index: int | slice) -> ClasspathRoot | tuple[ClasspathRoot, ...]:
        return self._roots[index]

    def __len__(self) -> int:
        return len(self._roots)

    def __iter__(self) -> Iterator[ClasspathRoot]:
        return iter(self._roots)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, (str, os.PathLike, ClasspathRoot)):
            return ClasspathRoot.of(item) in self._roots
        return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClasspathSet):
            return NotImplemented
        return self._roots == other._roots and self._project_count == other._project_count

    def __hash__(self) -> int:
        return hash((self._roots, self._project_count))

    def __repr__(self) -> str:
        return (
            f"ClasspathSet(project={len(self.project_roots)}, plugin={len(self.plugin_roots)})"
        )


def _unique_roots(entries: Iterable[RootLike], seen: set[Path]) -> list[ClasspathRoot]:
    unique: list[ClasspathRoot] = []
    for entry in entries:
        root = ClasspathRoot.of(entry)
        if root.path in seen:
            continue
        seen.add(root.path)
        unique.append(root)
    return unique


__all__ = ["ClasspathRoot", "ClasspathSet", "RootKind", "RootLike"]
