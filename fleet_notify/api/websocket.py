from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from fleet_notify.logging_config import get_logger
from fleet_notify.services.scope import room_key

router = APIRouter(tags=["websocket"])
logger = get_logger(__name__)


@router.websocket("/ws/notifications")
async def notifications_socket(
    websocket: WebSocket,
    recipient_type: Optional[str] = Query(None, alias="recipientType"),
    recipient_id: Optional[str] = Query(None, alias="recipientId")
):
    """
    Realtime notification feed.
    Admin dashboards connect without parameters and receive every event;
    passing recipientType and recipientId also joins that scope's room.
    """
    broadcaster = websocket.app.state.broadcaster
    if not broadcaster.is_ready:
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
        return

    await broadcaster.connect(websocket, room_key(recipient_type, recipient_id))
    try:
        # Client messages are only keep-alives
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Dashboard session disconnected")
    finally:
        broadcaster.disconnect(websocket)
