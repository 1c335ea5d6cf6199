from uuid import UUID

from core.exceptions import NotFound, PermissionDenied
from core.mapper import ORMMapper
from models.models import User
from realtime.messaging_service import MessagingService
from schemas.schema import ConversationOut, MarkReadOut, MessageOut


class MessageService:
    """HTTP side of messaging: history, conversation list and read receipts."""

    def __init__(self, messaging: MessagingService):
        self.messaging = messaging
        self.mapper: ORMMapper = ORMMapper()

    async def list_conversations(self, current_user: User) -> list[ConversationOut]:
        rows = await self.messaging.conversations.list_for_user(current_user.id)
        result = []
        for convo, other in rows:
            unread = await self.messaging.messages.unread_count(
                sender_id=other.id, receiver_id=current_user.id
            )
            result.append(self.mapper.conversation(convo, other, unread))
        return result

    async def list_messages(
        self,
        conversation_id: int,
        current_user: User,
        limit: int | None = None,
        before_id: int | None = None,
    ) -> list[MessageOut]:
        convo = await self.messaging.conversations.get(conversation_id)
        if convo is None:
            raise NotFound("Conversation not found")
        if current_user.id not in convo.participants():
            raise PermissionDenied("You are not part of this conversation")

        messages = await self.messaging.messages.list_for_conversation(
            conversation_id, limit=limit, before_id=before_id
        )
        return self.mapper.many(messages, MessageOut)

    async def mark_read(self, sender_id: UUID, current_user: User) -> MarkReadOut:
        updated = await self.messaging.messages.mark_read(
            sender_id=sender_id, receiver_id=current_user.id
        )
        return MarkReadOut(updated=updated)
