"""
patchrun config package public API.

File: src/patchrun/config/__init__.py
Last updated: 2026-10-18

Purpose
- Export config loading, structural validation and run parameter validation.

Functional requirements
- Support loading from ``patchrun.toml`` + ``PATCHRUN_`` env overrides + CLI overrides.
- Fail fast with clear structured validation/load errors.
"""

from patchrun.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    load_config,
    parse_override_assignments,
)
from patchrun.config.parameters import (
    ValidatedConfig,
    plugin_criteria_from_config,
    resolve_jre_home,
    sanitize_test_name,
    validate_parameters,
)
from patchrun.config.schema import (
    DEFAULT_CONFIG,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)

__all__ = [
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "ValidatedConfig",
    "assert_valid_config",
    "default_config",
    "load_config",
    "merge_config",
    "parse_override_assignments",
    "plugin_criteria_from_config",
    "resolve_jre_home",
    "sanitize_test_name",
    "validate_config",
    "validate_parameters",
]
