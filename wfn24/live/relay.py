"""Channel relay for live match updates.

Keeps the open WebSocket connections and their channel subscriptions
(match_{id}, league_{id}) and fans server-pushed events out to subscribers.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Set

from fastapi import WebSocket

logger = logging.getLogger("live.relay")

CHANNEL_KINDS = ("match", "league")


def channel_for(kind: str, entity_id: Any) -> str:
    """Channel name for a match or league, e.g. channel_for("match", 12) -> "match_12"."""
    if kind not in CHANNEL_KINDS:
        raise ValueError(f"Unknown channel kind '{kind}'")
    return f"{kind}_{entity_id}"


class ChannelRelay:
    """Manages WebSocket connections and per-channel subscriber sets."""

    def __init__(self):
        self._connections: Set[WebSocket] = set()
        self._channels: Dict[str, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def subscribers(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))

    def channels(self) -> List[str]:
        return sorted(channel for channel, members in self._channels.items() if members)

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self._connections.add(websocket)
        logger.info(f"Client connected. Total: {len(self._connections)}")

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a connection and all of its subscriptions."""
        async with self._lock:
            self._connections.discard(websocket)
            for channel in list(self._channels):
                self._channels[channel].discard(websocket)
                if not self._channels[channel]:
                    del self._channels[channel]
        logger.info(f"Client disconnected. Total: {len(self._connections)}")

    async def subscribe(self, websocket: WebSocket, channel: str) -> None:
        async with self._lock:
            self._channels.setdefault(channel, set()).add(websocket)
        logger.debug(f"Subscribed to {channel} ({self.subscribers(channel)} subscribers)")

    async def unsubscribe(self, websocket: WebSocket, channel: str) -> bool:
        """Returns False when the connection was not subscribed."""
        async with self._lock:
            members = self._channels.get(channel)
            if not members or websocket not in members:
                return False
            members.discard(websocket)
            if not members:
                del self._channels[channel]
        return True

    async def _send_all(self, targets: Iterable[WebSocket], data: Dict[str, Any]) -> int:
        """Send to every target; connections whose send fails are dropped."""
        targets = list(targets)
        if not targets:
            return 0

        async def send(connection: WebSocket) -> bool:
            try:
                await connection.send_json(data)
                return True
            except Exception as e:
                logger.warning(f"Send failed, dropping connection: {e}")
                return False

        results = await asyncio.gather(*(send(connection) for connection in targets))

        for connection, delivered in zip(targets, results):
            if not delivered:
                await self.disconnect(connection)
        return sum(1 for delivered in results if delivered)

    async def broadcast_to_channel(self, channel: str, data: Dict[str, Any]) -> int:
        """
        Send `data` to every subscriber of `channel`.

        Returns:
            Number of clients that received it
        """
        async with self._lock:
            targets = list(self._channels.get(channel, ()))
        delivered = await self._send_all(targets, data)
        logger.debug(f"Broadcast to {channel}: {delivered}/{len(targets)} delivered")
        return delivered

    async def broadcast_to_all(self, data: Dict[str, Any]) -> int:
        async with self._lock:
            targets = list(self._connections)
        return await self._send_all(targets, data)
