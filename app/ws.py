"""WebSocket push feed for dashboards."""

from __future__ import annotations

import logging

import anyio
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from services.broadcast import BroadcastHub, Subscriber, build_default_hub, build_subscriber

logger = logging.getLogger(__name__)

router = APIRouter()


def get_hub() -> BroadcastHub:
    return build_default_hub()


async def _send_events(websocket: WebSocket, subscriber: Subscriber, scope: anyio.CancelScope) -> None:
    try:
        while True:
            event = await subscriber.next_event()
            if event is None:
                # Closed by the hub, e.g. at shutdown.
                await websocket.close(code=status.WS_1001_GOING_AWAY)
                return
            await websocket.send_json(event)
    except (WebSocketDisconnect, RuntimeError, OSError) as exc:
        logger.warning(
            "Push connection failed",
            extra={"client": subscriber.client, "reason": repr(exc)},
        )
    finally:
        scope.cancel()


async def _receive_until_closed(
    websocket: WebSocket, subscriber: Subscriber, scope: anyio.CancelScope
) -> None:
    # Subscribers never send anything meaningful; reading only detects the close.
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info("Push connection closed by client", extra={"client": subscriber.client})
                return
    finally:
        scope.cancel()


@router.websocket("/ws")
async def subscribe(websocket: WebSocket, hub: BroadcastHub = Depends(get_hub)) -> None:
    await websocket.accept()
    client = websocket.client.host if websocket.client else None
    subscriber = build_subscriber(client=client)
    hub.on_subscriber_join(subscriber)

    try:
        async with anyio.create_task_group() as task_group:
            task_group.start_soon(_receive_until_closed, websocket, subscriber, task_group.cancel_scope)
            task_group.start_soon(_send_events, websocket, subscriber, task_group.cancel_scope)
    finally:
        hub.on_subscriber_leave(subscriber)
