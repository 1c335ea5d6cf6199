import logging
from typing import Awaitable, Callable, Sequence, TypeVar
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from core.breaker import CircuitBreaker, CircuitOpenError
from core.date_helper import utcnow
from core.exceptions import NotFound, StoreUnavailable, ValidationError
from models.models import Message
from repos.auth_repo import AuthRepo
from repos.conversation_repo import ConversationRepo
from repos.message_repo import MessageRepo

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def guarded_store_call(
    breaker: CircuitBreaker, handler: Callable[[], Awaitable[T]]
) -> T:
    try:
        return await breaker.call(handler)
    except (SQLAlchemyError, OSError, CircuitOpenError) as e:
        logger.error("Message store call failed: %s", e, exc_info=True)
        raise StoreUnavailable() from e


class MessageLog:
    """Append-only record of chat messages, read back per conversation."""

    def __init__(self, session_factory, breaker: CircuitBreaker, max_length: int):
        self.session_factory = session_factory
        self.breaker = breaker
        self.max_length = max_length

    async def append(self, sender_id: UUID, receiver_id: UUID, content: str) -> Message:
        content = (content or "").strip()
        if not content:
            raise ValidationError("Message content cannot be empty")
        if len(content) > self.max_length:
            raise ValidationError(
                f"Message content exceeds {self.max_length} characters"
            )
        if sender_id == receiver_id:
            raise ValidationError("Cannot send a message to yourself")

        async def handler():
            async with self.session_factory() as db:
                users = await AuthRepo(db).get_many([sender_id, receiver_id])
                for user_id in (sender_id, receiver_id):
                    user = users.get(user_id)
                    if user is None or not user.is_active:
                        raise ValidationError(f"Unknown user {user_id}")
                return await MessageRepo(db).create(
                    sender_id=sender_id,
                    receiver_id=receiver_id,
                    content=content,
                    created_at=utcnow(),
                )

        return await guarded_store_call(self.breaker, handler)

    async def list_for_conversation(
        self,
        conversation_id: int,
        *,
        limit: int | None = None,
        before_id: int | None = None,
    ) -> Sequence[Message]:
        async def handler():
            async with self.session_factory() as db:
                convo = await ConversationRepo(db).get_by_id(conversation_id)
                if convo is None:
                    raise NotFound("Conversation not found")
                return await MessageRepo(db).list_between(
                    convo.user_low_id,
                    convo.user_high_id,
                    limit=limit,
                    before_id=before_id,
                )

        return await guarded_store_call(self.breaker, handler)

    async def mark_read(self, sender_id: UUID, receiver_id: UUID) -> int:
        async def handler():
            async with self.session_factory() as db:
                return await MessageRepo(db).mark_read(sender_id, receiver_id, utcnow())

        return await guarded_store_call(self.breaker, handler)

    async def unread_count(self, sender_id: UUID, receiver_id: UUID) -> int:
        async def handler():
            async with self.session_factory() as db:
                return await MessageRepo(db).unread_count(sender_id, receiver_id)

        return await guarded_store_call(self.breaker, handler)
