"""
patchrun — subject project model

File: src/patchrun/classpath/project.py
Last updated: 2026-10-18

Purpose
- Describe the project under test (coordinates, build directories, test classpath,
  resolved dependencies) and the tool's own artifacts, as read from ``patchrun.toml``.

Functional requirements
- The test classpath comes from, in order of preference: ``test_classpath_file`` (the
  single-line output of ``mvn dependency:build-classpath``), inline ``test_classpath``
  entries, or the build directories followed by ``dependencies``.
- A configured classpath file that does not exist means dependencies were never
  resolved; callers get ``DependencyResolutionError`` carrying the build directories as
  the partial classpath.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from patchrun.errors import ConfigurationError


class DependencyResolutionError(RuntimeError):
    """The project's test classpath cannot be resolved; ``partial`` is what is known."""

    def __init__(self, message: str, *, partial: tuple[str, ...] = ()) -> None:
        self.partial = partial
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class Artifact:
    """A resolved dependency: Maven coordinates plus the file backing it."""

    group_id: str
    artifact_id: str
    version: str
    file: Path

    @property
    def coordinates(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"

    @property
    def key(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"

    def has_identity(self, group_id: str, artifact_id: str) -> bool:
        return self.group_id == group_id and self.artifact_id == artifact_id


@dataclass(frozen=True, slots=True)
class ProjectModel:
    group_id: str
    artifact_id: str
    output_dir: Path
    test_output_dir: Path
    test_classpath_file: Path | None = None
    test_classpath: tuple[str, ...] = ()
    dependencies: tuple[Path, ...] = field(default_factory=tuple)

    def test_classpath_elements(self) -> tuple[str, ...]:
        """Test-scope classpath entries in the order the build tool reports them."""

        build_dirs = (str(self.test_output_dir), str(self.output_dir))
        if self.test_classpath_file is not None:
            if not self.test_classpath_file.is_file():
                raise DependencyResolutionError(
                    f"test classpath file {self.test_classpath_file} does not exist; "
                    "run `mvn dependency:build-classpath` first",
                    partial=build_dirs,
                )
            return read_classpath_file(self.test_classpath_file)
        if self.test_classpath:
            return self.test_classpath
        return (*build_dirs, *(str(path) for path in self.dependencies))

    def complete_classpath(self, separator: str = os.pathsep) -> str:
        """Main output, test output, then every resolved dependency."""

        entries = [str(self.output_dir), str(self.test_output_dir)]
        entries.extend(str(path.absolute()) for path in self.dependencies)
        return separator.join(entries)


def read_classpath_file(path: Path, separator: str = os.pathsep) -> tuple[str, ...]:
    text = path.read_text(encoding="utf-8")
    entries: list[str] = []
    for line in text.splitlines():
        entries.extend(item.strip() for item in line.split(separator) if item.strip())
    return tuple(entries)


def project_from_config(config: Mapping[str, Any]) -> ProjectModel:
    project = config.get("project", {})
    if not isinstance(project, Mapping):
        raise ConfigurationError("config section [project] must be a table")

    classpath_file = str(project.get("test_classpath_file", "") or "").strip()
    return ProjectModel(
        group_id=str(project.get("group_id", "")).strip(),
        artifact_id=str(project.get("artifact_id", "")).strip(),
        output_dir=Path(str(project.get("output_dir") or "target/classes")),
        test_output_dir=Path(str(project.get("test_output_dir") or "target/test-classes")),
        test_classpath_file=Path(classpath_file) if classpath_file else None,
        test_classpath=tuple(project.get("test_classpath") or ()),
        dependencies=tuple(Path(item) for item in project.get("dependencies") or ()),
    )


def tool_artifacts_from_config(config: Mapping[str, Any]) -> dict[str, Artifact]:
    """The tool's own artifact map, keyed by ``group:artifact`` in declaration order."""

    tool = config.get("tool", {})
    if not isinstance(tool, Mapping):
        raise ConfigurationError("config section [tool] must be a table")

    artifacts: dict[str, Artifact] = {}
    for raw in tool.get("artifacts") or ():
        artifact = Artifact(
            group_id=str(raw["group_id"]),
            artifact_id=str(raw["artifact_id"]),
            version=str(raw["version"]),
            file=Path(str(raw["file"])),
        )
        artifacts[artifact.key] = artifact
    return artifacts


__all__ = [
    "Artifact",
    "DependencyResolutionError",
    "ProjectModel",
    "project_from_config",
    "read_classpath_file",
    "tool_artifacts_from_config",
]
