"""
patchrun — unit tests for classpath assembly

File: tests/unit/classpath/test_assembler.py
Last updated: 2026-10-18

Purpose
- Validate how the project test classpath and the tool's plugin artifact merge into a
  single ``ClasspathSet``.

What this test file should cover
- Classpath file, inline entries and build-directory fallback.
- Unresolved dependencies degrade to a partial classpath with a warning.
- Only the tool's own plugin artifact is appended.
- Complete classpath string ordering.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from patchrun.classpath.assembler import (
    PLUGIN_ARTIFACT_IDENTITY,
    assemble_classpath,
    plugin_classpath,
    project_classpath,
)
from patchrun.classpath.project import (
    Artifact,
    DependencyResolutionError,
    ProjectModel,
    project_from_config,
    tool_artifacts_from_config,
)
from patchrun.errors import ClasspathResolutionWarning


def _project(tmp_path: Path, **overrides: object) -> ProjectModel:
    fields: dict[str, object] = {
        "group_id": "org.example",
        "artifact_id": "demo",
        "output_dir": tmp_path / "target" / "classes",
        "test_output_dir": tmp_path / "target" / "test-classes",
    }
    fields.update(overrides)
    return ProjectModel(**fields)  # type: ignore[arg-type]


def _artifact(group: str, artifact: str, file: Path) -> Artifact:
    return Artifact(group_id=group, artifact_id=artifact, version="1.0", file=file)


def test_classpath_file_is_read_in_order(tmp_path: Path) -> None:
    cp_file = tmp_path / "cp.txt"
    cp_file.write_text(
        os.pathsep.join([str(tmp_path / "lib" / "junit.jar"), str(tmp_path / "lib" / "a.jar")])
        + "\n",
        encoding="utf-8",
    )
    project = _project(tmp_path, test_classpath_file=cp_file)

    assert project_classpath(project) == (
        str(tmp_path / "lib" / "junit.jar"),
        str(tmp_path / "lib" / "a.jar"),
    )


def test_inline_entries_win_over_build_directories(tmp_path: Path) -> None:
    project = _project(tmp_path, test_classpath=("x.jar", "y.jar"))

    assert project_classpath(project) == ("x.jar", "y.jar")


def test_build_directories_then_dependencies_by_default(tmp_path: Path) -> None:
    dep = tmp_path / "lib" / "dep.jar"
    project = _project(tmp_path, dependencies=(dep,))

    assert project_classpath(project) == (
        str(tmp_path / "target" / "test-classes"),
        str(tmp_path / "target" / "classes"),
        str(dep),
    )


def test_unresolved_classpath_file_falls_back_to_partial(tmp_path: Path) -> None:
    project = _project(tmp_path, test_classpath_file=tmp_path / "missing.txt")

    with pytest.raises(DependencyResolutionError) as excinfo:
        project.test_classpath_elements()
    assert excinfo.value.partial == (
        str(tmp_path / "target" / "test-classes"),
        str(tmp_path / "target" / "classes"),
    )

    with capture_logs() as logs, pytest.warns(ClasspathResolutionWarning, match="missing.txt"):
        entries = project_classpath(project)

    assert entries == excinfo.value.partial
    assert [entry["event"] for entry in logs] == ["project_classpath_unresolved"]
    assert logs[0]["log_level"] == "warning"


def test_plugin_classpath_keeps_only_the_tool_plugin_artifact(tmp_path: Path) -> None:
    group, artifact = PLUGIN_ARTIFACT_IDENTITY
    plugin_jar = tmp_path / "patchrun-plugin.jar"
    artifacts = {
        "org.ow2.asm:asm": _artifact("org.ow2.asm", "asm", tmp_path / "asm.jar"),
        f"{group}:{artifact}": _artifact(group, artifact, plugin_jar),
        "io.patchrun:patchrun-core": _artifact(group, "patchrun-core", tmp_path / "core.jar"),
    }

    assert plugin_classpath(artifacts) == (plugin_jar,)
    assert plugin_classpath(list(artifacts.values()), identity=("org.ow2.asm", "asm")) == (
        tmp_path / "asm.jar",
    )


def test_assemble_puts_project_first_and_reports_counts(tmp_path: Path) -> None:
    group, artifact = PLUGIN_ARTIFACT_IDENTITY
    plugin_jar = tmp_path / "patchrun-plugin.jar"
    project = _project(tmp_path, test_classpath=(str(tmp_path / "a"), str(tmp_path / "a")))

    with capture_logs() as logs:
        classpath = assemble_classpath(project, [_artifact(group, artifact, plugin_jar)])

    assert classpath.paths() == (tmp_path / "a", plugin_jar)
    assembled = [entry for entry in logs if entry["event"] == "classpath_assembled"]
    assert assembled[0]["project_roots"] == 1
    assert assembled[0]["plugin_roots"] == 1
    assert assembled[0]["duplicates_dropped"] == 1


def test_complete_classpath_orders_outputs_before_dependencies(tmp_path: Path) -> None:
    dep = tmp_path / "dep.jar"
    project = _project(tmp_path, dependencies=(dep,))

    assert project.complete_classpath(":") == ":".join(
        [
            str(tmp_path / "target" / "classes"),
            str(tmp_path / "target" / "test-classes"),
            str(dep),
        ]
    )


def test_models_are_built_from_config_sections(tmp_path: Path) -> None:
    config = {
        "project": {
            "group_id": "org.example",
            "artifact_id": "demo",
            "output_dir": str(tmp_path / "out"),
            "test_output_dir": "",
            "test_classpath_file": "",
            "test_classpath": [],
            "dependencies": [str(tmp_path / "dep.jar")],
        },
        "tool": {
            "artifacts": [
                {
                    "group_id": "io.patchrun",
                    "artifact_id": "patchrun-plugin",
                    "version": "0.4.0",
                    "file": str(tmp_path / "plugin.jar"),
                }
            ]
        },
    }

    project = project_from_config(config)
    artifacts = tool_artifacts_from_config(config)

    assert project.output_dir == tmp_path / "out"
    assert project.test_output_dir == Path("target/test-classes")
    assert project.test_classpath_file is None
    assert project.dependencies == (tmp_path / "dep.jar",)
    assert list(artifacts) == ["io.patchrun:patchrun-plugin"]
    assert artifacts["io.patchrun:patchrun-plugin"].coordinates == (
        "io.patchrun:patchrun-plugin:0.4.0"
    )
