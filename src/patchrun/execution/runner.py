"""
patchrun — run preparation and engine hand-off

File: src/patchrun/execution/runner.py
Last updated: 2026-10-18

Purpose
- Drive one patch-validation run: validate parameters, select the plugin, assemble the
  classpath, build the byte source, optionally analyze static fields, freeze the
  execution context, and hand it to the validation engine.

Functional requirements
- Steps run in that fixed order; a failing step stops the run before any later step and
  no context reaches the engine.
- Engine failures are logged with their traceback and surfaced as
  ``ExecutionEngineError`` chained to the original exception. Every other error kind
  propagates unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

import structlog

from patchrun.bytecode import RuntimeClassLoader, RuntimeLookup, create_byte_source
from patchrun.classpath import assemble_classpath, project_from_config, tool_artifacts_from_config
from patchrun.config.parameters import ValidatedConfig, validate_parameters
from patchrun.errors import ConfigurationError, ExecutionEngineError
from patchrun.execution.context import ExecutionContext, build_execution_context
from patchrun.plugins import (
    DEFAULT_PLUGIN_REGISTRY,
    PluginRegistry,
    load_configured_plugins,
    locate_plugin,
    resolve_reference,
)


class ValidationEngine(Protocol):
    def __call__(self, context: ExecutionContext) -> object: ...


class StaticFieldAnalyzer(Protocol):
    """Lists static fields the engine must reset between tests in a reused JVM."""

    def __call__(self, complete_classpath: str, whitelist_prefix: str) -> Iterable[str]: ...


def resolve_engine(config: Mapping[str, Any]) -> ValidationEngine:
    section = config.get("engine", {})
    if not isinstance(section, Mapping):
        raise ConfigurationError("config section [engine] must be a table")
    entry = str(section.get("entry", "") or "").strip()
    if not entry:
        raise ConfigurationError(
            "no validation engine configured; set [engine] entry = 'module:attribute'"
        )
    return resolve_reference(entry)  # type: ignore[return-value]


def prepare_run(
    config: Mapping[str, Any],
    *,
    environ: Mapping[str, str] | None = None,
    registry: PluginRegistry | None = None,
    analyzer: StaticFieldAnalyzer | None = None,
    runtime_loader: RuntimeClassLoader | RuntimeLookup | None = None,
    logger: Any | None = None,
) -> ExecutionContext:
    """Everything up to, but excluding, the engine call."""

    log = logger if logger is not None else structlog.get_logger(__name__)
    params = validate_parameters(config, environ=environ, logger=log)
    return _assemble(
        config,
        params,
        environ=environ,
        registry=registry,
        analyzer=analyzer,
        runtime_loader=runtime_loader,
        logger=log,
    )


def execute(
    config: Mapping[str, Any],
    *,
    engine: ValidationEngine | None = None,
    environ: Mapping[str, str] | None = None,
    registry: PluginRegistry | None = None,
    analyzer: StaticFieldAnalyzer | None = None,
    runtime_loader: RuntimeClassLoader | RuntimeLookup | None = None,
    logger: Any | None = None,
) -> object:
    """Prepare a run and invoke the validation engine; returns whatever the engine returns."""

    log = logger if logger is not None else structlog.get_logger(__name__)
    params = validate_parameters(config, environ=environ, logger=log)
    run_engine = engine if engine is not None else resolve_engine(config)
    context = _assemble(
        config,
        params,
        environ=environ,
        registry=registry,
        analyzer=analyzer,
        runtime_loader=runtime_loader,
        logger=log,
    )
    return invoke_engine(run_engine, context, logger=log)


def invoke_engine(
    engine: ValidationEngine, context: ExecutionContext, *, logger: Any | None = None
) -> object:
    log = logger if logger is not None else structlog.get_logger(__name__)
    log.info(
        "execution_engine_started",
        plugin=None if context.plugin is None else context.plugin.descriptor.name,
        classpath_roots=len(context.classpath),
        failing_tests=len(context.failing_tests),
    )
    try:
        result = engine(context)
    except Exception as exc:
        log.exception("execution_engine_failed", error=f"{type(exc).__name__}: {exc}")
        raise ExecutionEngineError(
            f"validation engine failed: {type(exc).__name__}: {exc}"
        ) from exc
    log.info("execution_engine_finished")
    return result


def _assemble(
    config: Mapping[str, Any],
    params: ValidatedConfig,
    *,
    environ: Mapping[str, str] | None,
    registry: PluginRegistry | None,
    analyzer: StaticFieldAnalyzer | None,
    runtime_loader: RuntimeClassLoader | RuntimeLookup | None,
    logger: Any,
) -> ExecutionContext:
    project = project_from_config(config)
    artifacts = tool_artifacts_from_config(config)

    plugin = None
    if params.plugin_criteria is not None:
        source = registry if registry is not None else DEFAULT_PLUGIN_REGISTRY
        load_configured_plugins(config, registry=source)
        plugin = locate_plugin(params.plugin_criteria, registry=source, logger=logger)

    classpath = assemble_classpath(project, artifacts, logger=logger)

    loader = runtime_loader
    if loader is None:
        loader = RuntimeClassLoader.from_context(environ, jre_home=params.jre_home)
    byte_source = create_byte_source(classpath, runtime_loader=loader)

    static_fields: tuple[str, ...] = ()
    if params.effective_reset_jvm and analyzer is not None:
        static_fields = tuple(analyzer(project.complete_classpath(), params.whitelist_prefix))
        logger.info("static_fields_analyzed", static_fields=len(static_fields))

    context = build_execution_context(
        params, classpath, byte_source, plugin=plugin, static_fields=static_fields
    )
    logger.info(
        "execution_context_built",
        classpath_roots=len(classpath),
        infer_failing_tests=context.infer_failing_tests,
        reset_jvm=context.reset_jvm,
    )
    return context


__all__ = [
    "StaticFieldAnalyzer",
    "ValidationEngine",
    "execute",
    "invoke_engine",
    "prepare_run",
    "resolve_engine",
]
