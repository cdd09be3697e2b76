"""
==============================================================================
Scan Session WebSocket Module
==============================================================================

Host UI adapter: drives one ScanSession per WebSocket connection.

Protocol:
---------
Client -> server:
    {"type": "start", "formats": ["QR_CODE"], "timeout": 30}
    {"type": "reset"}
    {"type": "close"}
    {"type": "state"}

Server -> client:
    {"type": "state", "phase": ..., "supported": ..., ...}
    {"type": "result", "payload": "ABC123", "format": "QR_CODE"}
    {"type": "error", "kind": "permission_denied", "message": ..., "retryable": true}
    {"type": "rejected", "code": "INVALID_TRANSITION", "message": ..., "details": {...}}
    {"type": "closed"}

The scan runs as a background task so ``close`` is honored while a decode
is still in flight.

==============================================================================
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from scanapp.config import get_settings
from scanapp.core import exceptions
from scanapp.core.dependencies import PlatformFactory, get_platform_factory
from scanapp.core.exceptions import AppException
from scanapp.scanner import BarcodeFormat, ScanConfig, ScanErrorKind, ScanSession


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter()


class ScanSessionWebSocketHandler:
    """
    Handler for scan session WebSocket connections.

    Manages the lifecycle of a scan session including:
    - Session creation on connect
    - start / reset / close / state commands
    - Result, error and closed notifications
    - Session teardown on disconnect
    """

    def __init__(self, websocket: WebSocket, platform_factory: PlatformFactory):
        self._websocket = websocket
        self._settings = get_settings()
        self._platform_factory = platform_factory
        self._session: Optional[ScanSession] = None
        self._scan_task: Optional[asyncio.Task] = None
        self._connected = False

    # =========================================================================
    # OUTGOING MESSAGES
    # =========================================================================

    async def _send(self, message: dict) -> None:
        if not self._connected:
            return
        try:
            await self._websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.debug(f"Send skipped, socket gone: {e}")
            self._connected = False

    async def send_state(self) -> None:
        snapshot = self._session.snapshot().model_dump(mode="json")
        await self._send({"type": "state", **snapshot})

    async def send_rejected(self, exc: AppException) -> None:
        """Send a rejected-command message to the client."""
        await self._send({
            "type": "rejected",
            "code": exc.code,
            "message": exc.message,
            "details": exc.details
        })

    async def on_result(self, payload: str, fmt: BarcodeFormat) -> None:
        await self._send({"type": "result", "payload": payload, "format": fmt.value})

    async def on_error(self, kind: ScanErrorKind, message: str) -> None:
        await self._send({
            "type": "error",
            "kind": kind.value,
            "message": message,
            "retryable": kind.retryable
        })

    async def on_closed(self) -> None:
        await self._send({"type": "closed"})

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def _build_config(self, data: dict) -> ScanConfig:
        default = self._settings.default_scan_config

        try:
            return ScanConfig(
                formats=data.get("formats") or default.formats,
                timeout=data.get("timeout", default.timeout),
            )
        except ValidationError as e:
            reason = "; ".join(err["msg"] for err in e.errors())
            raise exceptions.invalid_scan_config(reason)

    async def handle_start(self, data: dict) -> None:
        pending = self._scan_task is not None and not self._scan_task.done()
        if pending or self._session.is_running:
            raise exceptions.scan_in_progress()

        config = self._build_config(data)
        logger.info(f"▶️ Start scan: formats={sorted(f.value for f in config.formats)}")

        self._scan_task = asyncio.create_task(self._run_scan(config))

    async def _run_scan(self, config: ScanConfig) -> None:
        await self._session.start_scan(config)
        if not self._session.is_closed:
            await self.send_state()

    async def handle_reset(self) -> None:
        if not self._session.reset():
            raise exceptions.invalid_transition("reset", self._session.phase.value)
        await self.send_state()

    async def handle_message(self, data: dict) -> bool:
        """
        Dispatch one client message.

        Returns:
            False when the connection should end
        """
        message_type = data.get("type") if isinstance(data, dict) else None

        if self._session.is_closed and message_type != "state":
            raise exceptions.session_closed()

        if message_type == "start":
            await self.handle_start(data)
        elif message_type == "reset":
            await self.handle_reset()
        elif message_type == "state":
            await self.send_state()
        elif message_type == "close":
            logger.info("🛑 Client requested close")
            await self._session.close()
            return False
        else:
            raise exceptions.invalid_message(message_type)

        return True

    # =========================================================================
    # MAIN LOOP
    # =========================================================================

    async def run(self) -> None:
        """Main handler loop."""
        await self._websocket.accept()
        self._connected = True
        logger.info("📱 Scan session WebSocket connected")

        try:
            platform = self._platform_factory()
        except AppException as e:
            await self.send_rejected(e)
            await self._websocket.close()
            return

        self._session = ScanSession(
            platform,
            on_result=self.on_result,
            on_error=self.on_error,
            on_closed=self.on_closed,
            config=self._settings.default_scan_config,
            install_module=self._settings.install_scanner_module,
        )
        await self.send_state()

        try:
            while True:
                try:
                    data = await self._websocket.receive_json()
                except ValueError:
                    await self.send_rejected(exceptions.invalid_message(None))
                    continue

                try:
                    if not await self.handle_message(data):
                        break
                except AppException as e:
                    logger.warning(f"Command rejected: {e.code}")
                    await self.send_rejected(e)

        except WebSocketDisconnect:
            logger.info("📱 Client disconnected")
            self._connected = False
        finally:
            await self._session.close()
            if self._scan_task is not None:
                if not self._scan_task.done():
                    self._scan_task.cancel()
                await asyncio.gather(self._scan_task, return_exceptions=True)
            if self._connected:
                await self._websocket.close()
            logger.info("✅ Scan session WebSocket closed")


@router.websocket("/ws/scan")
async def websocket_scan(
    websocket: WebSocket,
    platform_factory: PlatformFactory = Depends(get_platform_factory)
):
    """Drive a camera scan session over WebSocket."""
    handler = ScanSessionWebSocketHandler(websocket, platform_factory)
    await handler.run()
