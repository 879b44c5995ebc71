"""
patchrun — unit tests for run parameter validation

File: tests/unit/config/test_parameters.py
Last updated: 2026-10-18

Purpose
- Validate JRE resolution, timeout checks, whitelist defaulting and failing-test
  sanitizing performed before any classpath or plugin work.

What this test file should cover
- Non-negative timeouts pass through unchanged; negative or non-finite ones fail.
- ``infer_failing_tests`` follows the emptiness of the explicit list.
- Every accepted test-name spelling sanitizes to ``package.Class.method``.
- Diagnostics are emitted as structured events.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from structlog.testing import capture_logs

from patchrun.config.parameters import (
    ValidatedConfig,
    plugin_criteria_from_config,
    resolve_jre_home,
    sanitize_test_name,
    validate_parameters,
)
from patchrun.config.schema import default_config, merge_config
from patchrun.errors import ConfigurationError


@pytest.fixture
def jre_env(tmp_path: Path) -> dict[str, str]:
    jre = tmp_path / "jdk"
    jre.mkdir()
    return {"JAVA_HOME": str(jre)}


def _config(**run: Any) -> dict[str, Any]:
    overlay: dict[str, Any] = {"run": {"whitelist_prefix": "org.example", **run}}
    return merge_config(default_config(), overlay)


def test_valid_config_produces_frozen_snapshot(jre_env: dict[str, str]) -> None:
    params = validate_parameters(_config(), environ=jre_env)

    assert isinstance(params, ValidatedConfig)
    assert params.jre_home == Path(jre_env["JAVA_HOME"]).absolute()
    assert params.whitelist_prefix == "org.example"
    assert params.timeout_bias == 2000
    assert params.timeout_coefficient == 0.5
    assert params.patches_pool == Path("patches-pool")
    assert params.plugin_criteria is None
    with pytest.raises(AttributeError):
        params.timeout_bias = 1  # type: ignore[misc]


def test_missing_java_home_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="JAVA_HOME is not set"):
        validate_parameters(_config(), environ={})


def test_blank_java_home_counts_as_missing() -> None:
    with pytest.raises(ConfigurationError, match="JAVA_HOME is not set"):
        resolve_jre_home({"JAVA_HOME": "   "})


def test_java_home_must_be_a_directory(tmp_path: Path) -> None:
    not_a_dir = tmp_path / "java"
    not_a_dir.write_text("", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Invalid JAVA_HOME"):
        validate_parameters(_config(), environ={"JAVA_HOME": str(not_a_dir)})


@settings(max_examples=30, deadline=None)
@given(
    bias=st.integers(min_value=0, max_value=10**9),
    coefficient=st.floats(min_value=0.0, max_value=1e6, allow_nan=False, allow_infinity=False),
)
def test_non_negative_timeouts_pass_through_unchanged(
    tmp_path_factory: pytest.TempPathFactory, bias: int, coefficient: float
) -> None:
    jre = tmp_path_factory.mktemp("jdk")

    params = validate_parameters(
        _config(timeout_bias=bias, timeout_coefficient=coefficient),
        environ={"JAVA_HOME": str(jre)},
    )

    assert params.timeout_bias == bias
    assert params.timeout_coefficient == coefficient


@settings(max_examples=20, deadline=None)
@given(bias=st.integers(max_value=-1))
def test_negative_timeout_bias_is_rejected(
    tmp_path_factory: pytest.TempPathFactory, bias: int
) -> None:
    jre = tmp_path_factory.mktemp("jdk")

    with pytest.raises(ConfigurationError, match="Invalid timeout bias"):
        validate_parameters(_config(timeout_bias=bias), environ={"JAVA_HOME": str(jre)})


@settings(max_examples=20, deadline=None)
@given(
    coefficient=st.floats(
        max_value=-1e-9, allow_nan=False, allow_infinity=False, exclude_max=False
    )
)
def test_negative_timeout_coefficient_is_rejected(
    tmp_path_factory: pytest.TempPathFactory, coefficient: float
) -> None:
    jre = tmp_path_factory.mktemp("jdk")

    with pytest.raises(ConfigurationError, match="Invalid timeout coefficient"):
        validate_parameters(
            _config(timeout_coefficient=coefficient), environ={"JAVA_HOME": str(jre)}
        )


@pytest.mark.parametrize("coefficient", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_timeout_coefficient_is_rejected(
    jre_env: dict[str, str], coefficient: float
) -> None:
    with pytest.raises(ConfigurationError, match="Invalid timeout coefficient"):
        validate_parameters(_config(timeout_coefficient=coefficient), environ=jre_env)


def test_small_timeout_bias_warns_but_is_accepted(jre_env: dict[str, str]) -> None:
    with capture_logs() as logs:
        params = validate_parameters(_config(timeout_bias=500), environ=jre_env)

    assert params.timeout_bias == 500
    warnings = [entry for entry in logs if entry["event"] == "timeout_bias_small"]
    assert warnings and warnings[0]["log_level"] == "warning"
    assert warnings[0]["minimum"] == 1000


def test_empty_whitelist_defaults_to_project_group_id(jre_env: dict[str, str]) -> None:
    config = merge_config(
        default_config(),
        {"run": {"whitelist_prefix": ""}, "project": {"group_id": "org.apache.commons"}},
    )

    with capture_logs() as logs:
        params = validate_parameters(config, environ=jre_env)

    assert params.whitelist_prefix == "org.apache.commons"
    events = {entry["event"]: entry for entry in logs}
    assert events["whitelist_prefix_missing"]["log_level"] == "warning"
    assert events["whitelist_prefix_defaulted"]["whitelist_prefix"] == "org.apache.commons"


def test_empty_whitelist_without_group_id_fails(jre_env: dict[str, str]) -> None:
    config = merge_config(default_config(), {"run": {"whitelist_prefix": ""}})

    with pytest.raises(ConfigurationError, match="whiteListPrefix"):
        validate_parameters(config, environ=jre_env)


def test_empty_failing_tests_enable_inference(jre_env: dict[str, str]) -> None:
    params = validate_parameters(_config(failing_tests=[]), environ=jre_env)

    assert params.infer_failing_tests is True
    assert params.failing_tests == ()


def test_explicit_failing_tests_are_sanitized(jre_env: dict[str, str]) -> None:
    raw = [
        "org.example.FooTest::testBar",
        " org.example.FooTest:testBaz ",
        "testQux(org.example.FooTest)",
        "org.example.FooTest.testPlain",
    ]

    params = validate_parameters(_config(failing_tests=raw), environ=jre_env)

    assert params.infer_failing_tests is False
    assert params.failing_tests == tuple(sanitize_test_name(name) for name in raw)
    assert params.failing_tests == (
        "org.example.FooTest.testBar",
        "org.example.FooTest.testBaz",
        "org.example.FooTest.testQux",
        "org.example.FooTest.testPlain",
    )


_IDENT = st.from_regex(r"[A-Za-z_][A-Za-z0-9_]{0,8}", fullmatch=True)


@settings(max_examples=40, deadline=None)
@given(
    package=st.lists(_IDENT, min_size=1, max_size=3),
    cls=_IDENT,
    method=_IDENT,
    form=st.sampled_from(["{c}::{m}", "{c}:{m}", "{m}({c})", "{c}.{m}"]),
)
def test_sanitized_name_is_dotted_for_every_spelling(
    package: list[str], cls: str, method: str, form: str
) -> None:
    owner = ".".join([*package, cls])

    sanitized = sanitize_test_name(form.format(c=owner, m=method))

    assert sanitized == f"{owner}.{method}"
    assert sanitize_test_name(sanitized) == sanitized


def test_all_tests_file_must_exist(jre_env: dict[str, str], tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="all-tests manifest"):
        validate_parameters(
            _config(all_tests_file=str(tmp_path / "absent.txt")), environ=jre_env
        )

    manifest = tmp_path / "all-tests.txt"
    manifest.write_text("org.example.FooTest\n", encoding="utf-8")
    params = validate_parameters(_config(all_tests_file=str(manifest)), environ=jre_env)
    assert params.all_tests_file == manifest


def test_arg_line_splits_on_semicolons(jre_env: dict[str, str]) -> None:
    params = validate_parameters(
        _config(arg_line="-Xmx2g; -Dfile.encoding=UTF-8;;"), environ=jre_env
    )

    assert params.arg_line == "-Xmx2g; -Dfile.encoding=UTF-8;;"
    assert params.jvm_args == ("-Xmx2g", "-Dfile.encoding=UTF-8")


@pytest.mark.parametrize(
    ("reset", "restart", "effective"),
    [(True, False, True), (True, True, False), (False, False, False), (False, True, False)],
)
def test_effective_reset_is_moot_when_restarting(
    jre_env: dict[str, str], reset: bool, restart: bool, effective: bool
) -> None:
    params = validate_parameters(_config(reset_jvm=reset, restart_jvm=restart), environ=jre_env)

    assert params.reset_jvm is reset
    assert params.effective_reset_jvm is effective


def test_plugin_criteria_render_params_as_text() -> None:
    config = merge_config(
        default_config(), {"plugin": {"name": "CapGen", "params": {"bugId": 112, "fast": True}}}
    )

    criteria = plugin_criteria_from_config(config)

    assert criteria is not None
    assert criteria.name == "CapGen"
    assert criteria.params == {"bugId": "112", "fast": "true"}


def test_blank_plugin_name_means_no_plugin_requested() -> None:
    config = merge_config(default_config(), {"plugin": {"name": "  ", "params": {"bugId": 1}}})

    assert plugin_criteria_from_config(config) is None
