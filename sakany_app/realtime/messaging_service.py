import logging
from uuid import UUID

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError

from core.breaker import CircuitBreaker
from core.exceptions import StoreUnavailable
from core.settings import settings
from models.models import Message

from .connection_manager import DEACTIVATED_CLOSE_CODE, SessionRegistry
from .conversation_ledger import ConversationLedger
from .frames import message_frame
from .heartbeat import LivenessSweeper
from .message_log import MessageLog

logger = logging.getLogger(__name__)


class MessagingService:
    """Owns every piece of shared messaging state.

    One instance lives on ``app.state.messaging`` for the lifetime of the
    application; connection handlers and HTTP routes only go through it.
    """

    def __init__(
        self,
        session_factory,
        *,
        heartbeat_interval: float = settings.HEARTBEAT_INTERVAL_SECONDS,
        max_message_length: int = settings.MAX_MESSAGE_LENGTH,
    ):
        self.session_factory = session_factory
        self.store_breaker = CircuitBreaker(
            name="message-store",
            failure_threshold=3,
            base_recovery_time=5,
            max_recovery_time=30,
            trip_on=(SQLAlchemyError, OSError),
        )
        self.sessions = SessionRegistry()
        self.messages = MessageLog(
            session_factory, self.store_breaker, max_message_length
        )
        self.conversations = ConversationLedger(session_factory, self.store_breaker)
        self.sweeper = LivenessSweeper(self.sessions, heartbeat_interval)

    async def start(self) -> None:
        self.sweeper.start()

    async def stop(self) -> None:
        await self.sweeper.stop()
        await self.sessions.close_all()

    async def disconnect_user(self, user_id: UUID) -> bool:
        return await self.sessions.evict(
            user_id, DEACTIVATED_CLOSE_CODE, "Account deactivated"
        )

    async def relay(
        self, sender_id: UUID, receiver_id: UUID, content: str
    ) -> tuple[Message, bool]:
        """Persist a chat message, record the contact and push it if possible.

        Returns the stored message and whether it was pushed live. Nothing is
        pushed unless the append succeeded.
        """
        message = await self.messages.append(sender_id, receiver_id, content)

        try:
            await self.conversations.touch(sender_id, receiver_id)
        except StoreUnavailable:
            logger.error(
                "Message %s stored but conversation for %s/%s not updated",
                message.id,
                sender_id,
                receiver_id,
            )

        delivered = await self.sessions.send(receiver_id, message_frame(message))
        if not delivered:
            logger.debug(
                "Recipient %s offline, message %s persisted only", receiver_id, message.id
            )
        return message, delivered


def get_messaging(request: Request) -> MessagingService:
    return request.app.state.messaging
