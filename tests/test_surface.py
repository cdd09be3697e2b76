"""
==============================================================================
Camera Surface Tests
==============================================================================

Tests for the camera surface controller and host view restoration.

==============================================================================
"""

import asyncio

import pytest

from scanapp.scanner import CameraSurfaceController, HostView
from scanapp.scanner.errors import SurfaceActivationError
from scanapp.scanner.models import ScanErrorKind
from scanapp.scanner.surface import SCANNER_ACTIVE_CLASS, TRANSPARENT

from conftest import FakePlatform


class TestHostView:
    """Host view transparency and restoration."""

    def test_make_transparent(self):
        view = HostView(background="#123456", classes={"dark"})

        view.make_transparent()

        assert view.background == TRANSPARENT
        assert view.classes == {"dark", SCANNER_ACTIVE_CLASS}
        assert view.is_transparent

    def test_restore_returns_exact_state(self):
        view = HostView(background="#123456", classes={"dark"})

        view.make_transparent()
        view.restore()

        assert view.background == "#123456"
        assert view.classes == {"dark"}
        assert not view.is_transparent

    def test_double_transparent_keeps_original(self):
        view = HostView(background="white")

        view.make_transparent()
        view.make_transparent()
        view.restore()

        assert view.background == "white"

    def test_restore_without_transparent_is_noop(self):
        view = HostView(background="white")

        view.restore()

        assert view.background == "white"
        assert view.classes == set()


class TestCameraSurfaceController:
    """Activation discipline."""

    @pytest.mark.asyncio
    async def test_activate_and_deactivate(self):
        platform = FakePlatform()
        surface = CameraSurfaceController(platform)

        await surface.activate()
        assert surface.is_active
        assert platform.active

        assert await surface.deactivate() is True
        assert not surface.is_active
        assert not platform.active

    @pytest.mark.asyncio
    async def test_double_activate_is_noop(self):
        platform = FakePlatform()
        surface = CameraSurfaceController(platform)

        await surface.activate()
        await surface.activate()

        assert platform.count("activate") == 1
        assert surface.activations == 1

    @pytest.mark.asyncio
    async def test_double_deactivate_is_noop(self):
        platform = FakePlatform()
        surface = CameraSurfaceController(platform)
        await surface.activate()

        assert await surface.deactivate() is True
        assert await surface.deactivate() is False
        assert platform.count("deactivate") == 1

    @pytest.mark.asyncio
    async def test_deactivate_when_inactive(self):
        platform = FakePlatform()
        surface = CameraSurfaceController(platform)

        assert await surface.deactivate() is False
        assert platform.calls == []

    @pytest.mark.asyncio
    async def test_concurrent_deactivate_runs_once(self):
        platform = FakePlatform()
        gate = asyncio.Event()

        async def slow_deactivate():
            platform.calls.append("deactivate")
            await gate.wait()

        platform.deactivate = slow_deactivate
        surface = CameraSurfaceController(platform)
        await surface.activate()

        first = asyncio.create_task(surface.deactivate())
        second = asyncio.create_task(surface.deactivate())
        await asyncio.sleep(0)

        assert surface.is_active
        gate.set()

        assert await first is True
        assert await second is False
        assert platform.count("deactivate") == 1
        assert not surface.is_active

    @pytest.mark.asyncio
    async def test_deactivate_waits_for_pending_activation(self):
        platform = FakePlatform()
        platform.activate_gate = asyncio.Event()
        surface = CameraSurfaceController(platform)

        activating = asyncio.create_task(surface.activate())
        await asyncio.wait_for(platform.activate_started.wait(), timeout=1)
        releasing = asyncio.create_task(surface.deactivate())
        await asyncio.sleep(0)

        assert platform.calls == ["activate"]
        assert surface.is_active

        platform.activate_gate.set()
        await activating

        assert await releasing is True
        assert platform.calls == ["activate", "deactivate"]
        assert not platform.active
        assert not surface.is_active

    @pytest.mark.asyncio
    async def test_activation_error_is_wrapped(self):
        platform = FakePlatform(activate_error=RuntimeError("camera in use"))
        surface = CameraSurfaceController(platform)

        with pytest.raises(SurfaceActivationError) as exc_info:
            await surface.activate()

        assert exc_info.value.kind == ScanErrorKind.ACTIVATION_FAILED
        assert "camera in use" in exc_info.value.message
        assert surface.is_active

    @pytest.mark.asyncio
    async def test_engaged_releases_on_activation_error(self):
        platform = FakePlatform(activate_error=RuntimeError("camera in use"))
        surface = CameraSurfaceController(platform)

        with pytest.raises(SurfaceActivationError):
            async with surface.engaged():
                pass

        assert platform.count("deactivate") == 1
        assert not surface.is_active

    @pytest.mark.asyncio
    async def test_engaged_releases_on_exception(self):
        platform = FakePlatform()
        surface = CameraSurfaceController(platform)

        with pytest.raises(ValueError):
            async with surface.engaged():
                assert surface.is_active
                raise ValueError("decode blew up")

        assert platform.count("deactivate") == 1
        assert not surface.is_active

    @pytest.mark.asyncio
    async def test_deactivate_error_still_releases(self):
        platform = FakePlatform()

        async def broken_deactivate():
            raise RuntimeError("restore failed")

        platform.deactivate = broken_deactivate
        surface = CameraSurfaceController(platform)
        await surface.activate()

        assert await surface.deactivate() is True
        assert not surface.is_active
        assert surface.deactivations == 1
