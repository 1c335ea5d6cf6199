from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.date_helper import as_utc
from models.models import Conversation


class ConversationRepo:
    def __init__(self, db):
        self.db = db

    def _pair_stmt(self, user_a: UUID, user_b: UUID):
        low, high = Conversation.canonical_pair(user_a, user_b)
        return select(Conversation).where(
            Conversation.user_low_id == low,
            Conversation.user_high_id == high,
        )

    async def find_by_pair(self, user_a: UUID, user_b: UUID) -> Conversation | None:
        result = await self.db.execute(self._pair_stmt(user_a, user_b))
        return result.scalar_one_or_none()

    async def get_by_id(self, conversation_id: int) -> Conversation | None:
        result = await self.db.execute(
            select(Conversation).where(Conversation.id == conversation_id)
        )
        return result.scalar_one_or_none()

    async def upsert_activity(
        self, user_a: UUID, user_b: UUID, at: datetime
    ) -> tuple[Conversation, bool]:
        """Find-or-create the pair's conversation and bump its last activity.

        Returns ``(conversation, created)``. A concurrent creator losing the
        unique-constraint race falls back to the row that won.
        """
        convo = await self.find_by_pair(user_a, user_b)
        if convo:
            return await self._bump(convo, at), False

        low, high = Conversation.canonical_pair(user_a, user_b)
        convo = Conversation(
            user_low_id=low,
            user_high_id=high,
            created_at=at,
            last_message_at=at,
        )
        self.db.add(convo)
        try:
            await self.db.commit()
            await self.db.refresh(convo)
            return convo, True
        except IntegrityError:
            await self.db.rollback()
            result = await self.db.execute(self._pair_stmt(user_a, user_b))
            return await self._bump(result.scalars().one(), at), False

    async def _bump(self, convo: Conversation, at: datetime) -> Conversation:
        if as_utc(convo.last_message_at) >= at:
            return convo
        convo.last_message_at = at
        try:
            await self.db.commit()
            await self.db.refresh(convo)
            return convo
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def list_for_user(self, user_id: UUID) -> Sequence[Conversation]:
        stmt = (
            select(Conversation)
            .where(
                or_(
                    Conversation.user_low_id == user_id,
                    Conversation.user_high_id == user_id,
                )
            )
            .order_by(Conversation.last_message_at.desc(), Conversation.id.desc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()
