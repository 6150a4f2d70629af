from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from app.services.event_bus import event_bus

router = APIRouter()


# TODO: [SECURITY] Add WebSocket authentication before production deployment
# See: https://fastapi.tiangolo.com/advanced/websockets/#handling-disconnections-and-multiple-clients
@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, project_id: Optional[str] = None):
    """Stream workspace events; pass ?project_id= to follow a single project."""
    await event_bus.connect(websocket, project_id)
    try:
        while True:
            # Keep connection alive; clients only listen
            await websocket.receive_text()
    except WebSocketDisconnect:
        await event_bus.disconnect(websocket)
