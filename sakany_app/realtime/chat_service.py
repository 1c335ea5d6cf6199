import logging
from uuid import UUID

from fastapi import WebSocket

from core.exceptions import ConnectionLost, StoreUnavailable, ValidationError
from models.enums import ConnectionState
from schemas.schema import ChatFrame, PingFrame, PongFrame

from .frames import PONG_FRAME, decode_frame, error_frame
from .messaging_service import MessagingService

logger = logging.getLogger(__name__)


class ChatService:
    """Drives one client connection through its lifecycle."""

    def __init__(self, messaging: MessagingService, websocket: WebSocket):
        self.messaging = messaging
        self.websocket = websocket
        self.user_id: UUID | None = None
        self._state = ConnectionState.CONNECTING

    @property
    def state(self) -> ConnectionState:
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CLOSED):
            return self._state
        if self.messaging.sessions.lookup(self.user_id) is not self.websocket:
            return ConnectionState.CLOSED
        if self.messaging.sessions.is_alive(self.user_id):
            return ConnectionState.ACTIVE
        return ConnectionState.IDLE

    async def on_connect(self, user_id: UUID):
        self.user_id = user_id
        await self.messaging.sessions.register(user_id, self.websocket)
        self._state = ConnectionState.REGISTERED
        logger.info("User %s connected", user_id)
        self._state = ConnectionState.ACTIVE

    async def on_disconnect(self):
        if self._state == ConnectionState.CLOSED:
            return
        self._state = ConnectionState.CLOSED
        if self.user_id is not None:
            await self.messaging.sessions.unregister(self.user_id, self.websocket)
            logger.info("User %s disconnected", self.user_id)

    async def on_frame(self, raw: str | bytes):
        if self.state == ConnectionState.CLOSED:
            raise ConnectionLost("Session was superseded or evicted")

        try:
            frame = decode_frame(raw)
        except ValidationError as e:
            logger.warning("Dropping frame from %s: %s", self.user_id, e.detail)
            return

        if isinstance(frame, PingFrame):
            self.messaging.sessions.mark_alive(self.user_id, self.websocket)
            await self.websocket.send_json(PONG_FRAME)
        elif isinstance(frame, PongFrame):
            self.messaging.sessions.mark_alive(self.user_id, self.websocket)
        elif isinstance(frame, ChatFrame):
            await self._on_message(frame)

    async def _on_message(self, frame: ChatFrame):
        try:
            await self.messaging.relay(self.user_id, frame.receiver_id, frame.content)
        except ValidationError as e:
            logger.warning("Dropping message from %s: %s", self.user_id, e.detail)
        except StoreUnavailable as e:
            logger.error("Message from %s not stored: %s", self.user_id, e.detail)
            await self.websocket.send_json(error_frame(e.detail))
