"""
patchrun — unit tests for the plugin registry

File: tests/unit/plugins/test_registry.py
Last updated: 2026-10-18

Purpose
- Validate explicit plugin registration: decorators, direct registration, ``module:attr``
  references from config, and entry points.

What this test file should cover
- Names normalize case-insensitively; registration order is preserved.
- Re-registering the same factory is idempotent.
- Factories that need arguments are rejected up front.
- Bad references surface as configuration errors.
"""

from __future__ import annotations

import sys
import types
from collections.abc import Iterator, Mapping
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from patchrun import main as main_module
from patchrun.errors import ConfigurationError, PluginConstructionError
from patchrun.main import ExitCode
from patchrun.plugins import registry as registry_module
from patchrun.plugins.base import PluginDescriptor
from patchrun.plugins.registry import (
    PluginRegistry,
    load_configured_plugins,
    register_plugin,
    resolve_reference,
)


class _Plugin:
    def __init__(self, name: str = "capgen") -> None:
        self._descriptor = PluginDescriptor(name=name, params={"bugId": "112"})

    @property
    def descriptor(self) -> PluginDescriptor:
        return self._descriptor

    def generate(self, patches_pool: Path, params: Mapping[str, str]) -> None:
        return None


@pytest.fixture
def plugin_module() -> Iterator[types.ModuleType]:
    module = types.ModuleType("patchrun_test_plugins")

    def make_capgen() -> _Plugin:
        return _Plugin("CapGen")

    make_capgen.plugin_name = "capgen"  # type: ignore[attr-defined]

    def make_unnamed() -> _Plugin:
        return _Plugin("unnamed")

    module.make_capgen = make_capgen  # type: ignore[attr-defined]
    module.make_unnamed = make_unnamed  # type: ignore[attr-defined]
    module.not_callable = 42  # type: ignore[attr-defined]
    sys.modules[module.__name__] = module
    yield module
    sys.modules.pop(module.__name__, None)


def test_register_normalizes_names_and_keeps_order() -> None:
    registry = PluginRegistry()

    def first() -> _Plugin:
        return _Plugin()

    def second() -> _Plugin:
        return _Plugin()

    registry.register("CapGen", first)
    registry.register("  capgen ", second, source="config")

    candidates = registry.candidates("CAPGEN")
    assert [item.factory for item in candidates] == [first, second]
    assert [item.source for item in candidates] == ["external", "config"]
    assert registry.registered_names() == ("capgen",)
    assert registry.contains("CapGen")
    assert not registry.contains("arja")


def test_registering_the_same_factory_twice_is_a_no_op() -> None:
    registry = PluginRegistry()

    first = registry.register("capgen", _Plugin)
    again = registry.register("CapGen", _Plugin)

    assert first is again
    assert len(registry.candidates("capgen")) == 1


def test_factories_requiring_arguments_are_rejected() -> None:
    registry = PluginRegistry()

    def needs_args(bug_id: str) -> _Plugin:
        return _Plugin(bug_id)

    with pytest.raises(ValueError, match="without arguments"):
        registry.register("capgen", needs_args)


def test_empty_plugin_names_are_rejected() -> None:
    with pytest.raises(ValueError, match="must not be empty"):
        PluginRegistry().register("   ", _Plugin)


def test_decorator_registers_into_the_given_registry() -> None:
    registry = PluginRegistry()

    @register_plugin("Arja", registry=registry)
    class ArjaPlugin(_Plugin):
        def __init__(self) -> None:
            super().__init__("arja")

    assert ArjaPlugin.plugin_name == "arja"  # type: ignore[attr-defined]
    (registration,) = registry.candidates("arja")
    assert registration.factory is ArjaPlugin
    assert registration.source == "builtin"


def test_registrations_are_listed_in_global_order() -> None:
    registry = PluginRegistry()
    registry.register("b", _Plugin)
    registry.register("a", lambda: _Plugin("a"))

    assert [item.name for item in registry.registrations()] == ["b", "a"]


def test_references_load_factories_declaring_a_plugin_name(
    plugin_module: types.ModuleType,
) -> None:
    registry = PluginRegistry()

    registry.load_references([f"{plugin_module.__name__}:make_capgen"])

    (registration,) = registry.candidates("capgen")
    assert registration.factory is plugin_module.make_capgen
    assert registration.source == "config"


def test_reference_without_plugin_name_is_a_configuration_error(
    plugin_module: types.ModuleType,
) -> None:
    with pytest.raises(ConfigurationError, match="plugin_name"):
        PluginRegistry().load_references([f"{plugin_module.__name__}:make_unnamed"])


@pytest.mark.parametrize(
    ("reference", "message"),
    [
        ("no_colon", "expected 'module:attribute'"),
        ("patchrun_test_plugins_absent:thing", "unable to import"),
        ("patchrun_test_plugins:missing", "missing 'missing'"),
        ("patchrun_test_plugins:not_callable", "does not resolve to a callable"),
    ],
)
def test_bad_references_raise_configuration_errors(
    plugin_module: types.ModuleType, reference: str, message: str
) -> None:
    with pytest.raises(ConfigurationError, match=message):
        resolve_reference(reference)


def test_entry_points_are_registered_by_name(monkeypatch: pytest.MonkeyPatch) -> None:
    class _EntryPoint:
        def __init__(self, name: str, target: object) -> None:
            self.name = name
            self._target = target

        def load(self) -> object:
            return self._target

    def arja() -> _Plugin:
        return _Plugin("arja")

    requested: list[str] = []

    def fake_entry_points(*, group: str) -> list[_EntryPoint]:
        requested.append(group)
        return [_EntryPoint("kali", _Plugin), _EntryPoint("arja", arja)]

    monkeypatch.setattr(registry_module, "entry_points", fake_entry_points)
    registry = PluginRegistry()

    assert registry.load_entry_points() == 2
    assert requested == ["patchrun.plugins"]
    assert [item.name for item in registry.registrations()] == ["arja", "kali"]
    assert {item.source for item in registry.registrations()} == {"entry_point"}


def test_broken_entry_point_is_a_plugin_construction_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    class _BrokenEntryPoint:
        name = "capgen"

        def load(self) -> object:
            raise ImportError("No module named 'capgen_impl'")

    monkeypatch.setattr(
        registry_module, "entry_points", lambda *, group: [_BrokenEntryPoint()]
    )

    with capture_logs() as logs, pytest.raises(PluginConstructionError) as excinfo:
        load_configured_plugins({"plugins": {"entry_points": True}}, registry=PluginRegistry())

    assert excinfo.value.plugin_name == "capgen"
    assert isinstance(excinfo.value.__cause__, ImportError)
    assert "ImportError: No module named 'capgen_impl'" in str(excinfo.value)
    assert main_module._route_exception(excinfo.value) is ExitCode.PLUGIN_ERROR
    assert logs[-1]["event"] == "plugin_entry_point_failed"
    assert logs[-1]["plugin"] == "capgen"


def test_entry_point_factory_needing_arguments_is_a_plugin_construction_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    class _EntryPoint:
        name = "arja"

        def load(self) -> object:
            def make_arja(bug_id: str) -> _Plugin:
                return _Plugin("arja")

            return make_arja

    monkeypatch.setattr(registry_module, "entry_points", lambda *, group: [_EntryPoint()])
    registry = PluginRegistry()

    with pytest.raises(PluginConstructionError, match="without arguments") as excinfo:
        registry.load_entry_points()

    assert isinstance(excinfo.value.__cause__, ValueError)
    assert registry.registered_names() == ()


def test_load_configured_plugins_honours_the_entry_point_switch(
    monkeypatch: pytest.MonkeyPatch, plugin_module: types.ModuleType
) -> None:
    def fail_entry_points(*, group: str) -> list[object]:
        raise AssertionError("entry points must not be scanned")

    monkeypatch.setattr(registry_module, "entry_points", fail_entry_points)
    config = {
        "plugins": {
            "factories": [f"{plugin_module.__name__}:make_capgen"],
            "entry_points": False,
        }
    }

    registry = load_configured_plugins(config, registry=PluginRegistry())

    assert registry.registered_names() == ("capgen",)
