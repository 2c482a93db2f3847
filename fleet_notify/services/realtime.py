"""
Realtime broadcaster for dashboard WebSocket sessions.

Every connection belongs to the global channel; a connection opened for a
recipient scope additionally joins the room "{recipient_type}:{recipient_id}".
The broadcaster is unready until start() and after stop(); emitting while
unready raises BroadcasterNotReadyError.
"""

import json
import logging
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from fleet_notify.errors import BroadcasterNotReadyError

logger = logging.getLogger(__name__)


class RealtimeBroadcaster:
    def __init__(self):
        self.connections: Set[WebSocket] = set()
        self.rooms: Dict[str, Set[WebSocket]] = {}
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    def start(self) -> None:
        self._ready = True
        logger.info("Realtime broadcaster started")

    async def stop(self) -> None:
        """Close every session and return to the unready state"""
        self._ready = False
        for ws in list(self.connections):
            try:
                await ws.close()
            except Exception as e:
                logger.debug(f"Ignoring close error on shutdown: {e}")
        self.connections.clear()
        self.rooms.clear()
        logger.info("Realtime broadcaster stopped")

    async def connect(self, websocket: WebSocket, room: Optional[str] = None) -> None:
        await websocket.accept()
        self.connections.add(websocket)
        if room:
            self.rooms.setdefault(room, set()).add(websocket)
        logger.info(f"Dashboard session connected (room={room or '-'}, sessions={len(self.connections)})")

    def disconnect(self, websocket: WebSocket) -> None:
        self.connections.discard(websocket)
        for key in list(self.rooms):
            self.rooms[key].discard(websocket)
            if not self.rooms[key]:
                del self.rooms[key]

    def room_size(self, room: str) -> int:
        return len(self.rooms.get(room, ()))

    async def emit_global(self, event: str, payload: Any) -> int:
        """Send to every connected session; returns the number reached"""
        return await self._send(self.connections, event, payload)

    async def emit_to_room(self, room_key: str, event: str, payload: Any) -> int:
        return await self._send(self.rooms.get(room_key, set()), event, payload)

    async def _send(self, targets: Set[WebSocket], event: str, payload: Any) -> int:
        if not self._ready:
            raise BroadcasterNotReadyError("Realtime broadcaster has not been started")

        text = json.dumps({"event": event, "data": jsonable_encoder(payload, by_alias=True)})
        sent, dead = 0, []
        for ws in list(targets):
            try:
                await ws.send_text(text)
                sent += 1
            except Exception as e:
                logger.debug(f"Dropping dead session: {e}")
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws)
        return sent
