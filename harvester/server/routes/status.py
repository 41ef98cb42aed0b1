"""Live status stream over WebSocket."""
import asyncio

from fastapi import APIRouter, WebSocket

router = APIRouter(tags=["status"])


@router.websocket("/ws/status")
async def status_stream(websocket: WebSocket):
    """
    Send a snapshot of all active workers, then every supervisor event.

    The observer is dropped as soon as the client disconnects, whether or
    not events are flowing.
    """
    await websocket.accept()
    supervisor = websocket.app.state.supervisor
    loop = asyncio.get_running_loop()
    events: asyncio.Queue = asyncio.Queue()

    snapshot, unsubscribe = supervisor.subscribe(
        lambda event: loop.call_soon_threadsafe(events.put_nowait, event)
    )

    async def forward_events():
        while True:
            event = await events.get()
            await websocket.send_json(event)

    sender = None
    try:
        await websocket.send_json({"type": "snapshot", "workers": snapshot})
        sender = asyncio.create_task(forward_events())
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        unsubscribe()
        if sender is not None:
            sender.cancel()
