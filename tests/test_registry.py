"""Tests for toolchain_installer.registry — ComponentRegistry."""

from __future__ import annotations

import pytest

from toolchain_installer.registry import Component, ComponentRegistry, ExecutionMode


class TestComponentRegistry:
    def test_report_groups_by_mode_and_presence(self):
        reg = ComponentRegistry()
        reg.record("runtime-a", ExecutionMode.NATIVE, True)
        reg.record("runtime-b", "emulated", True)
        reg.record("extension-x", ExecutionMode.UNKNOWN, True)
        reg.record("runtime-c", ExecutionMode.NATIVE, False)

        assert reg.report() == {
            "native": ["runtime-a"],
            "emulated": ["runtime-b"],
            "unknown": ["extension-x"],
            "absent": ["runtime-c"],
        }

    def test_append_only(self):
        reg = ComponentRegistry()
        reg.record("rt", ExecutionMode.EMULATED, True)
        reg.record("rt", ExecutionMode.NATIVE, True)

        assert len(reg) == 2
        assert reg.get("rt").mode == ExecutionMode.NATIVE
        assert not hasattr(reg, "remove")

    def test_components_view_is_immutable(self):
        reg = ComponentRegistry()
        reg.record("rt", ExecutionMode.NATIVE, True, path="/opt/rt")

        assert reg.components == (Component(name="rt", mode=ExecutionMode.NATIVE, present=True, path="/opt/rt"),)
        with pytest.raises(AttributeError):
            reg.components[0].present = False  # type: ignore[misc]

    def test_invalid_mode_rejected(self):
        with pytest.raises(ValueError):
            ComponentRegistry().record("rt", "jit", True)

    def test_get_unknown_name(self):
        assert ComponentRegistry().get("nope") is None
