from typing import Iterable, Type, TypeVar

from pydantic import BaseModel

from schemas.schema import ConversationOut, UserPublicOut

T = TypeVar("T", bound=BaseModel)


class ORMMapper:
    """Turns ORM rows into response schemas."""

    @staticmethod
    def one(item, schema: Type[T]) -> T:
        return schema.model_validate(item)

    @staticmethod
    def many(items: Iterable, schema: Type[T]) -> list[T]:
        return [schema.model_validate(item) for item in items]

    @staticmethod
    def wire(item, schema: Type[T]) -> dict:
        """camelCase JSON-ready dict, for payloads built outside a response_model."""
        return schema.model_validate(item).model_dump(mode="json", by_alias=True)

    @staticmethod
    def conversation(convo, other_user, unread_count: int) -> ConversationOut:
        return ConversationOut(
            id=convo.id,
            user1_id=convo.user_low_id,
            user2_id=convo.user_high_id,
            last_message_at=convo.last_message_at,
            other_user=UserPublicOut.model_validate(other_user),
            unread_count=unread_count,
        )
