"""Command-line interface router for patchrun."""

from __future__ import annotations

import argparse
import hashlib
import os
import secrets
import sys
import time
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from patchrun import __version__
from patchrun.bytecode import RuntimeClassLoader, create_byte_source
from patchrun.classpath import assemble_classpath, project_from_config, tool_artifacts_from_config
from patchrun.config import load_config, parse_override_assignments, resolve_jre_home
from patchrun.execution import invoke_engine, prepare_run, resolve_engine
from patchrun.observability import correlation_scope, setup_logging, shutdown_logging
from patchrun.plugins import DEFAULT_PLUGIN_REGISTRY, load_configured_plugins
from patchrun.ui.render import CLIRenderer, create_renderer


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="patchrun",
        description=(
            "patchrun: prepare and launch patch-validation runs.\n\n"
            "Common workflows:\n"
            "  patchrun run --dry-run        Validate config and show the execution context\n"
            "  patchrun run                  Hand the context to the configured engine\n"
            "  patchrun classpath            Show the assembled classpath\n"
            "  patchrun plugins              List registered patch generation plugins\n"
            "  patchrun fetch com.foo.Bar    Resolve class bytes through the byte source\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"patchrun {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to patchrun TOML config (default: ./patchrun.toml if present).",
    )
    common.add_argument(
        "--set",
        "-D",
        dest="overrides",
        action="append",
        default=[],
        metavar="SECTION.KEY=VALUE",
        help="Override a config value; repeatable. Values are TOML literals or bare strings.",
    )
    common.add_argument(
        "--log-dir",
        default=None,
        help="Base directory for run logs (default: [observability] log_dir).",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Show detailed output.",
    )
    common.add_argument("--json", action="store_true", help="Emit deterministic JSON output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # run -----------------------------------------------------------------
    run_parser = subparsers.add_parser(
        "run",
        parents=[common],
        help="Prepare a patch-validation run and invoke the validation engine",
        description=(
            "Validate parameters, select the plugin, assemble the classpath and hand the\n"
            "execution context to the engine named by [engine] entry.\n\n"
            "Examples:\n"
            "  patchrun run --dry-run\n"
            "  patchrun run --set plugin.name=capgen --set plugin.params.bugId=112\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Stop after building the execution context; do not invoke the engine.",
    )
    run_parser.set_defaults(handler=_cmd_run)

    # classpath -----------------------------------------------------------
    classpath_parser = subparsers.add_parser(
        "classpath",
        parents=[common],
        help="Show the assembled project + plugin classpath",
    )
    classpath_parser.add_argument(
        "--path-string",
        action="store_true",
        help="Print the classpath as one OS path-separator joined line.",
    )
    classpath_parser.set_defaults(handler=_cmd_classpath)

    # plugins -------------------------------------------------------------
    plugins_parser = subparsers.add_parser(
        "plugins",
        parents=[common],
        help="List registered patch generation plugins",
    )
    plugins_parser.set_defaults(handler=_cmd_plugins)

    # fetch ---------------------------------------------------------------
    fetch_parser = subparsers.add_parser(
        "fetch",
        parents=[common],
        help="Resolve the bytes of one class through the byte source",
    )
    fetch_parser.add_argument("class_name", help="Dotted or slashed class name")
    fetch_parser.add_argument(
        "--output",
        "-o",
        default=None,
        help="Write the class bytes to this file.",
    )
    fetch_parser.set_defaults(handler=_cmd_fetch)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_run(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    dry_run = _flag(args, "dry_run")

    with _run_logging(args, config) as run_id:
        log = structlog.get_logger(__name__)
        engine = None if dry_run else resolve_engine(config)
        context = prepare_run(config, logger=log)
        summary = context.to_summary()
        summary["run_id"] = run_id

        if engine is None:
            _render_context(args, summary)
            return 0

        plugin_name = None if context.plugin is None else context.plugin.descriptor.name
        with correlation_scope(plugin=plugin_name):
            result = invoke_engine(engine, context, logger=log)

    if _flag(args, "json"):
        create_renderer().json_block({"run_id": run_id, "result": _jsonable(result)})
        return 0
    renderer = _get_renderer(args)
    renderer.kv("Run ID", run_id)
    renderer.kv("Status", "finished")
    if result is not None:
        renderer.kv("Result", result)
    return 0


def _cmd_classpath(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    with _run_logging(args, config):
        classpath = assemble_classpath(
            project_from_config(config), tool_artifacts_from_config(config)
        )

    if _flag(args, "path_string"):
        print(classpath.as_path_string())
        return 0
    if _flag(args, "json"):
        create_renderer().json_block(
            {
                "project": [str(root) for root in classpath.project_roots],
                "plugin": [str(root) for root in classpath.plugin_roots],
            }
        )
        return 0

    renderer = _get_renderer(args)
    rows = [
        ("project", root.kind.value, str(root)) for root in classpath.project_roots
    ] + [("plugin", root.kind.value, str(root)) for root in classpath.plugin_roots]
    if not rows:
        renderer.text("Classpath is empty")
        return 0
    renderer.table(("Group", "Kind", "Path"), rows)
    return 0


def _cmd_plugins(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    registry = load_configured_plugins(config, registry=DEFAULT_PLUGIN_REGISTRY)
    registrations = registry.registrations()

    if _flag(args, "json"):
        create_renderer().json_block(
            {
                "plugins": [
                    {
                        "name": item.name,
                        "source": item.source,
                        "factory": _qualified_name(item.factory),
                    }
                    for item in registrations
                ]
            }
        )
        return 0

    renderer = _get_renderer(args)
    if not registrations:
        renderer.text("No plugins registered")
        return 0
    renderer.table(
        ("Name", "Source", "Factory"),
        [(item.name, item.source, _qualified_name(item.factory)) for item in registrations],
    )
    return 0


def _cmd_fetch(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    class_name = _require_str(getattr(args, "class_name", None), "class_name")

    with _run_logging(args, config):
        classpath = assemble_classpath(
            project_from_config(config), tool_artifacts_from_config(config)
        )
        # Same lookup order as the engine gets: project, plugin, then CLASSPATH and the JRE.
        runtime_loader = RuntimeClassLoader.from_context(
            os.environ, jre_home=resolve_jre_home(os.environ)
        )
        byte_source = create_byte_source(classpath, runtime_loader=runtime_loader)
        try:
            data = byte_source.fetch(class_name)
        except ValueError as exc:
            raise CLIError(str(exc), exit_code=2) from exc

    if data is None:
        raise CLIError(f"class not found: {class_name}", exit_code=1)

    output = _optional_str(getattr(args, "output", None))
    if output is not None:
        Path(output).write_bytes(data)

    payload = {
        "class": class_name,
        "bytes": len(data),
        "sha256": hashlib.sha256(data).hexdigest(),
    }
    if _flag(args, "json"):
        create_renderer().json_block(payload)
        return 0
    renderer = _get_renderer(args)
    renderer.kv("Class", class_name)
    renderer.kv("Bytes", len(data))
    renderer.kv("SHA-256", payload["sha256"])
    if output is not None:
        renderer.kv("Written to", output)
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@contextmanager
def _run_logging(args: argparse.Namespace, config: Mapping[str, Any]) -> Iterator[str]:
    run_id = _new_run_id()
    observability = config.get("observability", {})
    run_log = setup_logging(
        observability if isinstance(observability, Mapping) else None,
        run_id=run_id,
        log_dir=_optional_str(getattr(args, "log_dir", None)),
    )
    try:
        with correlation_scope(run_id=run_id):
            yield run_id
    finally:
        shutdown_logging(run_log)


def _render_context(args: argparse.Namespace, summary: Mapping[str, Any]) -> None:
    if _flag(args, "json"):
        create_renderer().json_block(summary)
        return

    renderer = _get_renderer(args)
    renderer.kv("Run ID", summary["run_id"])
    renderer.kv("JRE home", summary["jre_home"])
    renderer.kv("Whitelist prefix", summary["whitelist_prefix"])
    renderer.kv("Plugin", summary["plugin"] or "(none)")
    renderer.kv("Patches pool", summary["patches_pool"])
    renderer.kv("Timeout bias", summary["timeout_bias"])
    renderer.kv("Timeout coefficient", summary["timeout_coefficient"])
    renderer.kv("Reset JVM", str(summary["reset_jvm"]).lower())
    if summary["infer_failing_tests"]:
        renderer.kv("Failing tests", "(inferred)")
    else:
        renderer.section("Failing tests:")
        renderer.items(summary["failing_tests"])
    if renderer.verbose:
        renderer.section("Classpath:")
        renderer.items(summary["classpath"]["project"] + summary["classpath"]["plugin"])
        if summary["jvm_args"]:
            renderer.section("JVM args:")
            renderer.items(summary["jvm_args"])


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    config_path = _optional_str(getattr(args, "config_path", None))
    overrides = parse_override_assignments(tuple(getattr(args, "overrides", None) or ()))
    return load_config(config_path, cli_overrides=overrides)


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(verbose=_flag(args, "verbose"))


def _new_run_id() -> str:
    stamp = time.strftime("%Y%m%dT%H%M%SZ", time.gmtime())
    return f"{stamp}-{os.getpid()}-{secrets.token_hex(3)}"


def _qualified_name(value: object) -> str:
    module = getattr(value, "__module__", None) or "?"
    qualname = getattr(value, "__qualname__", None) or type(value).__qualname__
    return f"{module}:{qualname}"


def _jsonable(value: object) -> object:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return repr(value)


def _require_str(value: object, name: str) -> str:
    if not isinstance(value, str):
        raise CLIError(f"invalid {name}: expected string", exit_code=2)
    cleaned = value.strip()
    if not cleaned:
        raise CLIError(f"invalid {name}: value cannot be empty", exit_code=2)
    return cleaned


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise CLIError("invalid optional string argument", exit_code=2)
    cleaned = value.strip()
    return cleaned or None


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["CLIError", "build_parser", "run_cli"]
