"""Module entrypoint for ``python -m patchrun``."""

from __future__ import annotations

from patchrun.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
