from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from models.models import Message


class MessageRepo:
    def __init__(self, db):
        self.db = db

    def _between(self, user_a: UUID, user_b: UUID):
        return or_(
            and_(Message.sender_id == user_a, Message.receiver_id == user_b),
            and_(Message.sender_id == user_b, Message.receiver_id == user_a),
        )

    async def create(
        self,
        *,
        sender_id: UUID,
        receiver_id: UUID,
        content: str,
        created_at: datetime,
    ) -> Message:
        msg = Message(
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            is_read=False,
            created_at=created_at,
        )
        self.db.add(msg)
        try:
            await self.db.commit()
            await self.db.refresh(msg)
            return msg
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def list_between(
        self,
        user_a: UUID,
        user_b: UUID,
        *,
        limit: int | None = None,
        before_id: int | None = None,
    ) -> Sequence[Message]:
        conditions = [self._between(user_a, user_b)]
        if before_id is not None:
            conditions.append(Message.id < before_id)

        if limit is None:
            stmt = (
                select(Message)
                .where(*conditions)
                .order_by(Message.created_at, Message.id)
            )
            result = await self.db.execute(stmt)
            return result.scalars().all()

        stmt = (
            select(Message)
            .where(*conditions)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(reversed(result.scalars().all()))

    async def mark_read(
        self, sender_id: UUID, receiver_id: UUID, read_at: datetime
    ) -> int:
        stmt = (
            update(Message)
            .where(
                Message.sender_id == sender_id,
                Message.receiver_id == receiver_id,
                Message.is_read.is_(False),
            )
            .values(is_read=True, read_at=read_at)
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
            return result.rowcount or 0
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def unread_count(self, sender_id: UUID, receiver_id: UUID) -> int:
        stmt = select(func.count(Message.id)).where(
            Message.sender_id == sender_id,
            Message.receiver_id == receiver_id,
            Message.is_read.is_(False),
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()
