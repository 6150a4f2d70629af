from typing import Dict, Optional, Set
from fastapi import WebSocket
import json
import asyncio

from app.core.events import WorkspaceEvent


class EventBus:
    def __init__(self):
        # project_id -> sockets; None subscribes to every project
        self.connections: Dict[Optional[str], Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, project_id: Optional[str] = None):
        await websocket.accept()
        async with self._lock:
            self.connections.setdefault(project_id, set()).add(websocket)

    async def disconnect(self, websocket: WebSocket):
        async with self._lock:
            for sockets in self.connections.values():
                sockets.discard(websocket)

    async def broadcast(self, event: dict, project_id: Optional[str] = None):
        """Broadcast event to clients watching ``project_id`` and to global watchers."""
        message = json.dumps(event, default=str)
        disconnected = set()

        targets = set(self.connections.get(None, set()))
        if project_id is not None:
            targets |= self.connections.get(project_id, set())

        for ws in targets:
            try:
                await ws.send_text(message)
            except Exception:
                disconnected.add(ws)

        if disconnected:
            async with self._lock:
                for sockets in self.connections.values():
                    sockets -= disconnected

    async def publish(self, event: WorkspaceEvent):
        await self.broadcast(event.model_dump(), event.project_id)


# Singleton instance
event_bus = EventBus()
