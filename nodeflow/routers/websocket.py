"""Status streaming router.

Remote observers subscribe to one status channel per connection:

    ws://host:port/ws/status/http-request-execution

Every status message published on that channel is forwarded as JSON. The
client may send ``ping`` and receives ``{"type": "pong"}``.
"""

import asyncio
import weakref

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from nodeflow.constants import ALL_STATUS_CHANNELS
from nodeflow.core.container import container
from nodeflow.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["status"])

UNKNOWN_CHANNEL_CLOSE_CODE = 4404

# =============================================================================
# Concurrent Send Protection
# =============================================================================
_send_locks: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()


async def _safe_send(websocket: WebSocket, data: dict):
    """Send with a per-socket lock; the forwarder and pong replies share it."""
    if websocket not in _send_locks:
        _send_locks[websocket] = asyncio.Lock()
    async with _send_locks[websocket]:
        await websocket.send_json(data)


async def _forward(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        payload = await queue.get()
        await _safe_send(websocket, payload)


@router.get("/api/status/channels")
async def list_channels():
    """Names of every status channel a client may subscribe to."""
    return {"channels": sorted(ALL_STATUS_CHANNELS)}


@router.websocket("/ws/status/{channel}")
async def status_websocket(websocket: WebSocket, channel: str):
    if channel not in ALL_STATUS_CHANNELS:
        logger.warning("Rejected subscription to unknown channel", channel=channel)
        await websocket.close(code=UNKNOWN_CHANNEL_CLOSE_CODE)
        return

    broadcaster = container.broadcaster()

    async with broadcaster.subscribe(channel) as queue:
        await websocket.accept()
        await _safe_send(websocket, {"type": "subscribed", "channel": channel})

        forwarder = asyncio.create_task(_forward(websocket, queue))
        try:
            while True:
                message = await websocket.receive_text()
                if message.strip() == "ping":
                    await _safe_send(websocket, {"type": "pong"})
        except WebSocketDisconnect:
            logger.debug("Status client disconnected", channel=channel)
        finally:
            forwarder.cancel()
            try:
                await forwarder
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning("Status forwarder stopped with error", channel=channel, error=str(e))
