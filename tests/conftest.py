"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides scripted scanner platforms, callback recorders, sessions and a
test client wired to a scripted platform.

==============================================================================
"""

import asyncio
from typing import Any, Callable, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

from scanapp.core.dependencies import get_platform_factory
from scanapp.main import app
from scanapp.scanner import (
    Candidate,
    ScanConfig,
    ScannerPlatform,
    ScanPhase,
    ScanSession,
)


# ============================================================================
# SCRIPTED PLATFORM
# ============================================================================

class FakePlatform(ScannerPlatform):
    """
    Scripted ScannerPlatform recording every call.

    Set ``decode_gate`` (or ``activate_gate``) to an asyncio.Event to hold
    the decode (or activate) call in flight until the test releases it. ``observer`` is called on every
    platform call; assertion failures it raises are kept in ``violations``
    so they cannot be mistaken for platform errors by the session.
    """

    name = "fake"

    def __init__(
        self,
        supported: Any = True,
        permission: Any = "granted",
        candidates: Optional[List[Candidate]] = None,
        decode_error: Optional[Exception] = None,
        activate_error: Optional[Exception] = None,
        install_error: Optional[Exception] = None,
    ):
        self.supported = supported
        self.permission = permission
        self.candidates = candidates if candidates is not None else [Candidate(raw_value="ABC123")]
        self.decode_error = decode_error
        self.activate_error = activate_error
        self.install_error = install_error

        self.decode_gate: Optional[asyncio.Event] = None
        self.decode_started = asyncio.Event()
        self.activate_gate: Optional[asyncio.Event] = None
        self.activate_started = asyncio.Event()
        self.observer: Optional[Callable[[str], None]] = None
        self.calls: List[str] = []
        self.violations: List[tuple] = []
        self.configs: List[ScanConfig] = []
        self.active = False

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.observer is not None:
            try:
                self.observer(name)
            except AssertionError as e:
                self.violations.append((name, e))

    def count(self, name: str) -> int:
        return self.calls.count(name)

    async def probe(self) -> bool:
        self._record("probe")
        if isinstance(self.supported, Exception):
            raise self.supported
        return self.supported

    async def install_module(self) -> None:
        self._record("install_module")
        if self.install_error is not None:
            raise self.install_error

    async def request_permission(self) -> Any:
        self._record("request_permission")
        if isinstance(self.permission, Exception):
            raise self.permission
        return self.permission

    async def activate(self) -> None:
        self._record("activate")
        self.activate_started.set()
        if self.activate_gate is not None:
            await self.activate_gate.wait()
        self.active = True
        if self.activate_error is not None:
            raise self.activate_error

    async def deactivate(self) -> None:
        self._record("deactivate")
        self.active = False

    async def decode(self, config: ScanConfig) -> List[Candidate]:
        self._record("decode")
        self.configs.append(config)
        self.decode_started.set()
        if self.decode_gate is not None:
            await self.decode_gate.wait()
        if self.decode_error is not None:
            raise self.decode_error
        return list(self.candidates)

    async def stop(self) -> None:
        self._record("stop")


class CallbackRecorder:
    """Collects host callbacks in the order they fire."""

    def __init__(self):
        self.events: List[tuple] = []

    def on_result(self, payload, fmt) -> None:
        self.events.append(("result", payload, fmt))

    def on_error(self, kind, message) -> None:
        self.events.append(("error", kind, message))

    def on_closed(self) -> None:
        self.events.append(("closed",))

    @property
    def kinds(self) -> List[str]:
        return [event[0] for event in self.events]


def assert_invariants(session: ScanSession) -> None:
    """Check the session invariants that must hold in every reachable state."""
    assert session.surface_active == (session.phase == ScanPhase.SCANNING)
    assert not (session.last_result is not None and session.last_error is not None)

    if session.phase in (ScanPhase.SUCCEEDED, ScanPhase.FAILED):
        assert (session.last_result is None) != (session.last_error is None)
    else:
        assert session.last_result is None
        assert session.last_error is None

    if session.supported is False:
        assert session.phase not in (ScanPhase.REQUESTING_PERMISSION, ScanPhase.SCANNING)


# ============================================================================
# SESSION FIXTURES
# ============================================================================

@pytest.fixture
def platform() -> FakePlatform:
    """Scripted platform: supported, granted, decodes 'ABC123' as QR."""
    return FakePlatform()


@pytest.fixture
def recorder() -> CallbackRecorder:
    return CallbackRecorder()


@pytest.fixture
def session(platform: FakePlatform, recorder: CallbackRecorder) -> ScanSession:
    """Session over the scripted platform with recorded callbacks."""
    session = ScanSession(
        platform,
        on_result=recorder.on_result,
        on_error=recorder.on_error,
        on_closed=recorder.on_closed,
    )
    platform.observer = lambda _: assert_invariants(session)
    return session


# ============================================================================
# CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def client(platform: FakePlatform) -> Generator[TestClient, None, None]:
    """Create test client whose sessions run on the scripted platform."""
    app.dependency_overrides[get_platform_factory] = lambda: (lambda: platform)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
