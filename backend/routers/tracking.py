import asyncio
import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from backend.live.registry import LiveLocationRegistry
from .auth import get_current_user
from .driver import get_registry

logger = logging.getLogger(__name__)

router = APIRouter()

REQUEST_ALL_LOCATIONS = "requestAllLocations"


def snapshot_payload(registry: LiveLocationRegistry) -> Dict[str, Dict[str, Any]]:
    return {vehicle_id: position.as_event() for vehicle_id, position in registry.snapshot().items()}


def is_snapshot_request(message: str) -> bool:
    if message.strip() == REQUEST_ALL_LOCATIONS:
        return True
    try:
        data = json.loads(message)
    except ValueError:
        return False
    return isinstance(data, dict) and data.get("event") == REQUEST_ALL_LOCATIONS


@router.get("/api/location/all", tags=["Tracking"])
async def get_all_locations(
    current_user: Any = Depends(get_current_user),
    registry: LiveLocationRegistry = Depends(get_registry),
):
    return snapshot_payload(registry)


@router.websocket("/ws")
async def websocket_bus_locations(websocket: WebSocket):
    registry: LiveLocationRegistry = websocket.app.state.registry
    await websocket.accept()
    subscription = registry.subscribe()
    send_lock = asyncio.Lock()
    logger.info("Observer connected (%d connected)", registry.subscriber_count)

    async def send(event: str, data: Any):
        async with send_lock:
            await websocket.send_json({"event": event, "data": data})

    async def forward_updates():
        while True:
            position = await subscription.get()
            await send("locationUpdate", position.as_event())

    sender = asyncio.create_task(forward_updates())
    try:
        while True:
            message = await websocket.receive_text()
            if is_snapshot_request(message):
                await send("allLocations", snapshot_payload(registry))
    except WebSocketDisconnect:
        pass
    finally:
        sender.cancel()
        registry.unsubscribe(subscription)
        logger.info("Observer disconnected (%d dropped updates)", subscription.dropped)
        await asyncio.gather(sender, return_exceptions=True)
