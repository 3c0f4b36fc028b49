"""
Per-user realtime notification channel over WebSockets.

Each authenticated socket joins the room of its user; a user may have
several sockets open (tabs, devices). Notifications are best-effort and
sockets that fail to receive are dropped.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:

    def __init__(self):
        self._rooms: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._rooms[user_id].add(websocket)
        logger.info(f"Realtime connection opened for user {user_id}")

    async def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            sockets = self._rooms.get(user_id)
            if sockets is None:
                return
            sockets.discard(websocket)
            if not sockets:
                del self._rooms[user_id]
        logger.info(f"Realtime connection closed for user {user_id}")

    def connection_count(self, user_id: str) -> int:
        return len(self._rooms.get(user_id, ()))

    async def send_to_user(self, user_id: str, event: str, payload: Dict[str, Any]) -> int:
        """
        Push an event to every socket of a user.

        Returns:
            Number of sockets the event was delivered to
        """
        async with self._lock:
            sockets = list(self._rooms.get(user_id, ()))

        delivered = 0
        for websocket in sockets:
            try:
                await websocket.send_json({"event": event, "data": payload})
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping realtime socket for user {user_id}: {e}")
                await self.disconnect(user_id, websocket)
        return delivered


manager = ConnectionManager()
