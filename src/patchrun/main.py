"""Process entry point for ``patchrun``: runs the CLI and maps failures to exit codes."""

from __future__ import annotations

import sys
import traceback
from collections.abc import Iterator, Sequence
from enum import IntEnum

from patchrun.errors import (
    ConfigurationError,
    ExecutionEngineError,
    PluginConstructionError,
    PluginNotFoundError,
)


class ExitCode(IntEnum):
    """Deterministic process exit-code contract."""

    SUCCESS = 0
    RUN_FAILED = 1
    CONFIG_ERROR = 2
    PLUGIN_ERROR = 3
    INTERNAL_ERROR = 4


# Tried in order against each exception of a chain, outermost first.
_ROUTES: tuple[tuple[type[BaseException] | tuple[type[BaseException], ...], ExitCode], ...] = (
    (ExecutionEngineError, ExitCode.RUN_FAILED),
    (ConfigurationError, ExitCode.CONFIG_ERROR),
    ((PluginConstructionError, PluginNotFoundError), ExitCode.PLUGIN_ERROR),
)


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Entrypoint used by ``python -m patchrun`` and the ``patchrun`` script."""

    from patchrun.ui.cli import run_cli

    try:
        outcome: object = run_cli(argv)
    except SystemExit as exc:
        # argparse reports --help, --version and usage errors this way.
        outcome = exc.code
    except Exception as exc:
        code = _route_exception(exc)
        if code is ExitCode.INTERNAL_ERROR:
            traceback.print_exception(exc, file=sys.stderr)
        else:
            print(f"error: {str(exc).strip() or type(exc).__name__}", file=sys.stderr)
        return int(code)

    if outcome is None:
        return int(ExitCode.SUCCESS)
    if isinstance(outcome, int):
        return outcome
    print(outcome, file=sys.stderr)
    return int(ExitCode.INTERNAL_ERROR)


def _route_exception(exc: BaseException) -> ExitCode:
    for item in _exception_chain(exc):
        for kinds, code in _ROUTES:
            if isinstance(item, kinds):
                return code
    return ExitCode.INTERNAL_ERROR


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None or current.__suppress_context__:
            current = current.__cause__
        else:
            current = current.__context__


__all__ = ["ExitCode", "cli_entrypoint"]
