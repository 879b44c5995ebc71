"""Output rendering for the patchrun CLI.

File: src/patchrun/ui/render.py
Last updated: 2026-10-18

Purpose
- Keep every human-facing print in one place so command handlers only decide *what*
  to show.

Functional requirements
- Plain, deterministic text; JSON output goes through ``json_block``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence


class CLIRenderer:
    """Thin plain-text renderer used by command handlers."""

    def __init__(self, *, verbose: bool = False) -> None:
        self.verbose = verbose

    def kv(self, key: str, value: object) -> None:
        print(f"{key}: {value}")

    def text(self, line: str) -> None:
        print(line)

    def section(self, title: str) -> None:
        """Print a section header with a preceding blank line."""

        print(f"\n{title}")

    def items(self, entries: Sequence[str], *, prefix: str = "- ") -> None:
        for entry in entries:
            print(f"  {prefix}{entry}")

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        """Print an aligned ASCII table; nothing is printed for zero rows."""

        if not rows:
            return

        widths = [len(header) for header in headers]
        for row in rows:
            for index, cell in enumerate(row[: len(headers)]):
                widths[index] = max(widths[index], len(str(cell)))

        def _pad(cells: Sequence[str]) -> str:
            padded = [
                (str(cells[index]) if index < len(cells) else "").ljust(width)
                for index, width in enumerate(widths)
            ]
            return "  ".join(padded).rstrip()

        print(f"  {_pad(list(headers))}")
        print(f"  {'  '.join('-' * width for width in widths)}")
        for row in rows:
            print(f"  {_pad(list(row))}")

    def json_block(self, payload: Mapping[str, object]) -> None:
        print(json.dumps(payload, sort_keys=True, indent=2, ensure_ascii=False))


def create_renderer(*, verbose: bool = False) -> CLIRenderer:
    return CLIRenderer(verbose=verbose)


__all__ = ["CLIRenderer", "create_renderer"]
