import asyncio
import logging
from uuid import UUID
from weakref import WeakValueDictionary

from core.breaker import CircuitBreaker
from core.date_helper import utcnow
from core.exceptions import ValidationError
from models.models import Conversation, User
from repos.auth_repo import AuthRepo
from repos.conversation_repo import ConversationRepo

from .message_log import guarded_store_call

logger = logging.getLogger(__name__)


class ConversationLedger:
    """One conversation per unordered user pair, ordered by last activity.

    ``touch`` holds a per-pair lock around find-or-create so two users
    messaging each other at the same moment never race into two rows; the
    unique constraint on the pair backs this up across processes.
    """

    def __init__(self, session_factory, breaker: CircuitBreaker):
        self.session_factory = session_factory
        self.breaker = breaker
        self._locks: WeakValueDictionary[tuple[UUID, UUID], asyncio.Lock] = (
            WeakValueDictionary()
        )

    def _lock_for(self, user_a: UUID, user_b: UUID) -> asyncio.Lock:
        pair = Conversation.canonical_pair(user_a, user_b)
        lock = self._locks.get(pair)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[pair] = lock
        return lock

    async def touch(self, user_a: UUID, user_b: UUID) -> Conversation:
        if user_a == user_b:
            raise ValidationError("A conversation needs two different users")

        async with self._lock_for(user_a, user_b):
            at = utcnow()

            async def handler():
                async with self.session_factory() as db:
                    convo, created = await ConversationRepo(db).upsert_activity(
                        user_a, user_b, at
                    )
                    if created:
                        logger.info(
                            "Conversation %s created for %s and %s",
                            convo.id,
                            user_a,
                            user_b,
                        )
                    return convo

            return await guarded_store_call(self.breaker, handler)

    async def get(self, conversation_id: int) -> Conversation | None:
        async def handler():
            async with self.session_factory() as db:
                return await ConversationRepo(db).get_by_id(conversation_id)

        return await guarded_store_call(self.breaker, handler)

    async def list_for_user(self, user_id: UUID) -> list[tuple[Conversation, User]]:
        async def handler():
            async with self.session_factory() as db:
                convos = await ConversationRepo(db).list_for_user(user_id)
                others = await AuthRepo(db).get_many(
                    c.other_participant(user_id) for c in convos
                )
                return [
                    (convo, others[convo.other_participant(user_id)])
                    for convo in convos
                    if convo.other_participant(user_id) in others
                ]

        return await guarded_store_call(self.breaker, handler)
