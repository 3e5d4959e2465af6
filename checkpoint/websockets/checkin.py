"""
==============================================================================
Check-In WebSocket Module
==============================================================================

Live feed of a check-in session for the operator screen.

Protocol:
---------
1. Client connects to /ws/checkin/{event_id} (session must exist)
2. Server sends the current state snapshot
3. Server pushes events as they happen:
       {"type": "state", "state": "processing", "busy": true, "error": null}
       {"type": "result", "result": {...ScanResult...}}
4. Client may send:
       {"type": "viewport", "width": 640, "height": 360}
       {"type": "manual", "candidate_id": "1017048777048490"}
       {"type": "stop"}      tears the session down

==============================================================================
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from checkpoint.core import AppException, exceptions
from checkpoint.core.dependencies import get_session_manager
from checkpoint.schemas import ViewportUpdate
from checkpoint.services.scan_scheduler import ScanScheduler
from checkpoint.services.session_manager import CheckInSessionManager


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter()


class CheckInWebSocketHandler:
    """
    Handler for operator WebSocket connections.

    Manages the lifecycle of one operator connection including:
    - Session lookup
    - Event forwarding from the scan scheduler
    - Viewport and manual entry messages
    """

    def __init__(self, websocket: WebSocket, manager: CheckInSessionManager):
        self._websocket = websocket
        self._manager = manager
        self._scheduler: ScanScheduler = None
        self._send_lock = asyncio.Lock()

    async def send_json(self, payload: dict) -> None:
        """Send a message, serialized with concurrent pushes."""
        async with self._send_lock:
            await self._websocket.send_json(payload)

    async def send_error(self, message: str, code: str = "ERROR") -> None:
        """Send error message to client."""
        await self.send_json({
            "type": "error",
            "code": code,
            "message": message
        })

    async def handle_viewport(self, data: dict) -> None:
        """Handle viewport message from client."""
        try:
            viewport = ViewportUpdate(width=data.get("width"), height=data.get("height"))
        except ValidationError:
            await self.send_error("Invalid viewport size", "INVALID_VIEWPORT")
            return

        self._scheduler.set_viewport(viewport.width, viewport.height)

    async def handle_manual(self, data: dict) -> None:
        """Handle manual entry message from client."""
        try:
            candidate = self._scheduler.submit_manual(str(data.get("candidate_id") or ""))
        except AppException as e:
            await self.send_error(e.message, e.code)
            return

        await self.send_json({
            "type": "manual",
            "accepted": True,
            "candidate_id": candidate.extracted_id
        })

    async def _forward_events(self, queue: asyncio.Queue) -> None:
        while True:
            event = await queue.get()
            await self.send_json(event)

    async def run(self, event_id: str) -> None:
        """Main handler loop."""
        await self._websocket.accept()
        logger.info(f"📱 Check-in WebSocket connected ({event_id})")

        try:
            self._scheduler = self._manager.get(event_id)
        except AppException as e:
            await self.send_error(e.message, e.code)
            await self._websocket.close()
            return

        queue = self._scheduler.subscribe()
        await self.send_json(self._scheduler.snapshot())
        forwarder = asyncio.create_task(self._forward_events(queue))

        try:
            while True:
                data = await self._websocket.receive_json()
                message_type = data.get("type")

                if message_type == "viewport":
                    await self.handle_viewport(data)

                elif message_type == "manual":
                    await self.handle_manual(data)

                elif message_type == "stop":
                    logger.info(f"🛑 Client requested stop ({event_id})")
                    self._scheduler.unsubscribe(queue)
                    await self._manager.stop_session(event_id)
                    break

                else:
                    await self.send_error(f"Unknown message type: {message_type}", "UNKNOWN_MESSAGE")

        except WebSocketDisconnect:
            logger.info("📱 Client disconnected")
        except AppException as e:
            await self.send_error(e.message, e.code)
        except Exception as e:
            logger.error(f"WebSocket error: {e}")
            error = exceptions.internal_error()
            try:
                await self.send_error(error.message, error.code)
            except (WebSocketDisconnect, RuntimeError):
                logger.debug("Client gone before error could be sent")
        finally:
            self._scheduler.unsubscribe(queue)
            forwarder.cancel()
            await asyncio.gather(forwarder, return_exceptions=True)
            logger.info("✅ Check-in WebSocket closed")


@router.websocket("/ws/checkin/{event_id}")
async def websocket_checkin(
    websocket: WebSocket,
    event_id: str,
    manager: CheckInSessionManager = Depends(get_session_manager)
):
    """Live check-in events via WebSocket."""
    handler = CheckInWebSocketHandler(websocket, manager)
    await handler.run(event_id)
