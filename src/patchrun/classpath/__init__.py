"""Classpath model, subject project description and classpath assembly."""

from patchrun.classpath.assembler import (
    PLUGIN_ARTIFACT_IDENTITY,
    assemble_classpath,
    plugin_classpath,
    project_classpath,
)
from patchrun.classpath.model import ClasspathRoot, ClasspathSet, RootKind
from patchrun.classpath.project import (
    Artifact,
    DependencyResolutionError,
    ProjectModel,
    project_from_config,
    read_classpath_file,
    tool_artifacts_from_config,
)

__all__ = [
    "Artifact",
    "ClasspathRoot",
    "ClasspathSet",
    "DependencyResolutionError",
    "PLUGIN_ARTIFACT_IDENTITY",
    "ProjectModel",
    "RootKind",
    "assemble_classpath",
    "plugin_classpath",
    "project_classpath",
    "project_from_config",
    "read_classpath_file",
    "tool_artifacts_from_config",
]
