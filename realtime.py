"""
Real-time order status updates.

Each order has a room. A websocket joins a room by sending
``{"event": "subscribe_order", "orderId": ...}`` and leaves it with
``unsubscribe_order`` or by disconnecting. When an order changes status every
connection in its room receives::

    {"event": "order_status_update",
     "data": {"orderId": ..., "status": ..., "timestamp": ...}}

Nothing is stored: a client that connects later must fetch the order.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Optional, Protocol, Set

from fastapi import WebSocket, WebSocketDisconnect

from database import utcnow

logger = logging.getLogger(__name__)

SUBSCRIBE = "subscribe_order"
UNSUBSCRIBE = "unsubscribe_order"
STATUS_UPDATE = "order_status_update"

# Seconds a single client gets to take a status update.
SEND_TIMEOUT = 5.0


class Connection(Protocol):
    async def send_json(self, data: Any) -> None:
        ...


class OrderRoomHub:
    """Order id -> live connections.

    All membership changes go through one asyncio.Lock. Messages are sent
    outside the lock to a snapshot of the room.
    """

    def __init__(self, send_timeout: float = SEND_TIMEOUT) -> None:
        self._rooms: Dict[str, Set[Connection]] = defaultdict(set)
        self._lock = asyncio.Lock()
        self.send_timeout = send_timeout

    async def subscribe(self, order_id: str, connection: Connection) -> None:
        async with self._lock:
            self._rooms[order_id].add(connection)

    async def unsubscribe(self, order_id: str, connection: Connection) -> None:
        async with self._lock:
            self._leave(order_id, connection)

    async def disconnect(self, connection: Connection) -> None:
        """Remove ``connection`` from every room it joined."""
        async with self._lock:
            for order_id in [oid for oid, members in self._rooms.items() if connection in members]:
                self._leave(order_id, connection)

    async def members(self, order_id: str) -> Set[Connection]:
        async with self._lock:
            return set(self._rooms.get(order_id, ()))

    async def room_count(self) -> int:
        async with self._lock:
            return len(self._rooms)

    def _leave(self, order_id: str, connection: Connection) -> None:
        members = self._rooms.get(order_id)
        if members is None:
            return
        members.discard(connection)
        if not members:
            del self._rooms[order_id]

    async def publish(self, order_id: str, status: str) -> int:
        """Send a status update to the room of ``order_id``.

        Sends run concurrently, each bounded by ``send_timeout``. Connections
        that fail or time out are dropped from the hub.

        Returns:
            How many connections the update was delivered to.
        """
        message = {
            "event": STATUS_UPDATE,
            "data": {
                "orderId": order_id,
                "status": status,
                "timestamp": utcnow().isoformat(),
            },
        }
        members = await self.members(order_id)
        results = await asyncio.gather(*(self._send(connection, order_id, message) for connection in members))
        delivered = sum(results)
        logger.info("Order %s status %s pushed to %d subscriber(s)", order_id, status, delivered)
        return delivered

    async def _send(self, connection: Connection, order_id: str, message: Dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(connection.send_json(message), timeout=self.send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning("Dropping connection that timed out receiving order %s update", order_id)
        except Exception:
            logger.warning("Dropping connection that failed to receive order %s update", order_id, exc_info=True)
        await self.disconnect(connection)
        return False


def _order_id_of(message: Any) -> Optional[str]:
    if not isinstance(message, dict):
        return None
    order_id = message.get("orderId", message.get("order_id"))
    if order_id is None or order_id == "":
        return None
    return str(order_id)


async def serve_connection(hub: OrderRoomHub, websocket: WebSocket) -> None:
    """Run one client's websocket session until it disconnects."""
    await websocket.accept()
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except (ValueError, KeyError):
                await websocket.send_json({"event": "error", "error": "Messages must be JSON objects"})
                continue

            event = message.get("event") if isinstance(message, dict) else None
            order_id = _order_id_of(message)
            if event not in (SUBSCRIBE, UNSUBSCRIBE):
                await websocket.send_json({"event": "error", "error": f"Unknown event {event!r}"})
                continue
            if order_id is None:
                await websocket.send_json({"event": "error", "error": "orderId is required"})
                continue

            if event == SUBSCRIBE:
                await hub.subscribe(order_id, websocket)
                logger.debug("Client subscribed to order %s", order_id)
                await websocket.send_json({"event": "subscribed", "orderId": order_id})
            else:
                await hub.unsubscribe(order_id, websocket)
                logger.debug("Client unsubscribed from order %s", order_id)
                await websocket.send_json({"event": "unsubscribed", "orderId": order_id})
    except WebSocketDisconnect:
        logger.debug("Client disconnected")
    finally:
        await hub.disconnect(websocket)
