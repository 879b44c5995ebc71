"""
patchrun — execution context handed to the validation engine

File: src/patchrun/execution/context.py
Last updated: 2026-10-18

Purpose
- One immutable value carrying everything the external validation engine needs for a
  patch-validation run. It is built field by field after every preparation step has
  succeeded; the engine receives it by value and nothing mutates it afterwards.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from patchrun.classpath.model import ClasspathSet
from patchrun.config.parameters import ValidatedConfig
from patchrun.plugins.base import MatchCriteria, PatchGenerationPlugin

ByteLookup = Callable[[str], "bytes | None"]


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    classpath: ClasspathSet
    fetch_bytes: ByteLookup
    whitelist_prefix: str
    failing_tests: tuple[str, ...]
    infer_failing_tests: bool
    jre_home: Path
    timeout_bias: int
    timeout_coefficient: float
    patches_pool: Path
    plugin: PatchGenerationPlugin | None = None
    plugin_criteria: MatchCriteria | None = None
    reset_jvm: bool = False
    restart_jvm: bool = False
    reset_interface: bool = False
    debug: bool = False
    profiler_only: bool = False
    all_tests_file: Path | None = None
    jvm_args: tuple[str, ...] = ()
    static_fields: tuple[str, ...] = ()

    @property
    def plugin_params(self) -> dict[str, str]:
        if self.plugin_criteria is None:
            return {}
        return dict(self.plugin_criteria.params)

    def to_summary(self) -> dict[str, Any]:
        """JSON-friendly view for dry runs and logs; the byte lookup is omitted."""

        return {
            "classpath": {
                "project": [str(root) for root in self.classpath.project_roots],
                "plugin": [str(root) for root in self.classpath.plugin_roots],
            },
            "whitelist_prefix": self.whitelist_prefix,
            "failing_tests": list(self.failing_tests),
            "infer_failing_tests": self.infer_failing_tests,
            "jre_home": str(self.jre_home),
            "timeout_bias": self.timeout_bias,
            "timeout_coefficient": self.timeout_coefficient,
            "patches_pool": str(self.patches_pool),
            "plugin": None if self.plugin is None else self.plugin.descriptor.name,
            "plugin_params": self.plugin_params,
            "reset_jvm": self.reset_jvm,
            "restart_jvm": self.restart_jvm,
            "reset_interface": self.reset_interface,
            "debug": self.debug,
            "profiler_only": self.profiler_only,
            "all_tests_file": None if self.all_tests_file is None else str(self.all_tests_file),
            "jvm_args": list(self.jvm_args),
            "static_fields": len(self.static_fields),
        }


def build_execution_context(
    params: ValidatedConfig,
    classpath: ClasspathSet,
    fetch_bytes: ByteLookup,
    *,
    plugin: PatchGenerationPlugin | None = None,
    static_fields: tuple[str, ...] = (),
) -> ExecutionContext:
    return ExecutionContext(
        classpath=classpath,
        fetch_bytes=fetch_bytes,
        whitelist_prefix=params.whitelist_prefix,
        failing_tests=params.failing_tests,
        infer_failing_tests=params.infer_failing_tests,
        jre_home=params.jre_home,
        timeout_bias=params.timeout_bias,
        timeout_coefficient=params.timeout_coefficient,
        patches_pool=params.patches_pool,
        plugin=plugin,
        plugin_criteria=params.plugin_criteria,
        reset_jvm=params.effective_reset_jvm,
        restart_jvm=params.restart_jvm,
        reset_interface=params.reset_interface,
        debug=params.debug,
        profiler_only=params.profiler_only,
        all_tests_file=params.all_tests_file,
        jvm_args=params.jvm_args,
        static_fields=static_fields,
    )


__all__ = ["ByteLookup", "ExecutionContext", "build_execution_context"]
