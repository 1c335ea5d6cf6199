import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from sqlalchemy.exc import SQLAlchemyError

from core.exceptions import ConnectionLost, NotAuthenticated
from core.get_current_user import get_current_user_ws

from .chat_service import ChatService
from .messaging_service import MessagingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime Chat"])

UNAUTHENTICATED_CLOSE_CODE = 4401
INTERNAL_ERROR_CLOSE_CODE = 1011


@router.websocket("/ws")
async def chat_endpoint(websocket: WebSocket):
    messaging: MessagingService = websocket.app.state.messaging

    try:
        current_user = await get_current_user_ws(websocket, messaging.session_factory)
    except NotAuthenticated as e:
        logger.warning("Rejected websocket handshake: %s", e.detail)
        await websocket.close(code=UNAUTHENTICATED_CLOSE_CODE, reason=e.detail)
        return
    except (SQLAlchemyError, OSError) as e:
        logger.error("Websocket handshake failed on the user store: %s", e)
        await websocket.close(
            code=INTERNAL_ERROR_CLOSE_CODE, reason="User store unavailable"
        )
        return

    await websocket.accept()
    chat_service = ChatService(messaging, websocket)

    try:
        await chat_service.on_connect(current_user.id)
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                continue
            await chat_service.on_frame(raw)
    except ConnectionLost as e:
        logger.info("Closing stale connection for %s: %s", current_user.id, e.detail)
    except WebSocketDisconnect:
        pass
    finally:
        await chat_service.on_disconnect()
