"""Merges the project test classpath with the tool's plugin artifact into one ClasspathSet."""

from __future__ import annotations

import warnings
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import structlog

from patchrun.classpath.model import ClasspathSet
from patchrun.classpath.project import Artifact, DependencyResolutionError, ProjectModel
from patchrun.constants import PLUGIN_ARTIFACT_ARTIFACT_ID, PLUGIN_ARTIFACT_GROUP_ID
from patchrun.errors import ClasspathResolutionWarning

PLUGIN_ARTIFACT_IDENTITY: tuple[str, str] = (PLUGIN_ARTIFACT_GROUP_ID, PLUGIN_ARTIFACT_ARTIFACT_ID)


def project_classpath(project: ProjectModel, *, logger: Any | None = None) -> tuple[str, ...]:
    """Test-scope entries of ``project``; partial entries when resolution is impossible."""

    log = logger if logger is not None else structlog.get_logger(__name__)
    try:
        return project.test_classpath_elements()
    except DependencyResolutionError as exc:
        log.warning(
            "project_classpath_unresolved",
            error=str(exc),
            partial_entries=len(exc.partial),
        )
        warnings.warn(str(exc), ClasspathResolutionWarning, stacklevel=2)
        return exc.partial


def plugin_classpath(
    artifacts: Mapping[str, Artifact] | Iterable[Artifact],
    *,
    identity: tuple[str, str] = PLUGIN_ARTIFACT_IDENTITY,
) -> tuple[Path, ...]:
    """Files of the artifacts matching ``identity``; every other plugin dependency is dropped."""

    values = artifacts.values() if isinstance(artifacts, Mapping) else artifacts
    group_id, artifact_id = identity
    return tuple(
        artifact.file for artifact in values if artifact.has_identity(group_id, artifact_id)
    )


def assemble_classpath(
    project: ProjectModel,
    artifacts: Mapping[str, Artifact] | Iterable[Artifact],
    *,
    identity: tuple[str, str] = PLUGIN_ARTIFACT_IDENTITY,
    logger: Any | None = None,
) -> ClasspathSet:
    log = logger if logger is not None else structlog.get_logger(__name__)
    project_entries = project_classpath(project, logger=log)
    plugin_entries = plugin_classpath(artifacts, identity=identity)

    classpath = ClasspathSet(project_roots=project_entries, plugin_roots=plugin_entries)
    log.info(
        "classpath_assembled",
        project_roots=len(classpath.project_roots),
        plugin_roots=len(classpath.plugin_roots),
        duplicates_dropped=len(project_entries) + len(plugin_entries) - len(classpath),
    )
    return classpath


__all__ = [
    "PLUGIN_ARTIFACT_IDENTITY",
    "assemble_classpath",
    "plugin_classpath",
    "project_classpath",
]
