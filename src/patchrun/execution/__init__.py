"""Execution context construction and validation engine hand-off."""

from patchrun.execution.context import ByteLookup, ExecutionContext, build_execution_context
from patchrun.execution.runner import (
    StaticFieldAnalyzer,
    ValidationEngine,
    execute,
    invoke_engine,
    prepare_run,
    resolve_engine,
)

__all__ = [
    "ByteLookup",
    "ExecutionContext",
    "StaticFieldAnalyzer",
    "ValidationEngine",
    "build_execution_context",
    "execute",
    "invoke_engine",
    "prepare_run",
    "resolve_engine",
]
