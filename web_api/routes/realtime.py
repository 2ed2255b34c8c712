"""
Realtime updates over WebSocket.

Endpoints:
- WS / - Receive attendance_update and event_update messages as JSON frames
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, status

from core.realtime import RealtimeNotifier, get_notifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


async def _forward_messages(websocket: WebSocket, queue: asyncio.Queue) -> None:
    """Send queued messages until the notifier drops this client."""
    while True:
        message = await queue.get()
        if message is None:
            logger.info("Closing realtime connection for a client that fell behind")
            await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
            return
        await websocket.send_json(message)


async def _discard_incoming(websocket: WebSocket) -> None:
    """Read and ignore client frames until the client disconnects."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/")
async def realtime_updates(
    websocket: WebSocket,
    notifier: RealtimeNotifier = Depends(get_notifier),
):
    # Subscribe before accepting so no broadcast is missed after the handshake
    queue = await notifier.subscribe()
    tasks: set[asyncio.Task] = set()
    try:
        await websocket.accept()

        tasks = {
            asyncio.create_task(_forward_messages(websocket, queue)),
            asyncio.create_task(_discard_incoming(websocket)),
        }
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            task.result()
    finally:
        # The tasks must not outlive the handler, even when it is cancelled
        for task in tasks:
            task.cancel()
        await notifier.unsubscribe(queue)
        await asyncio.gather(*tasks, return_exceptions=True)
