"""Public observability primitives: one structlog-fed JSON-lines log per run."""

from patchrun.observability.logging import (
    CORRELATION_KEYS,
    LOG_FILENAME,
    RunLog,
    active_run_log,
    correlation_scope,
    get_correlation_context,
    redact_secrets,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "CORRELATION_KEYS",
    "LOG_FILENAME",
    "RunLog",
    "active_run_log",
    "correlation_scope",
    "get_correlation_context",
    "redact_secrets",
    "setup_logging",
    "shutdown_logging",
]
