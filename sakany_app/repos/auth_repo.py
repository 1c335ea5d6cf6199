import uuid
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from models.models import User


class AuthRepo:
    def __init__(self, db):
        self.db = db

    async def by_id(self, user_id: uuid.UUID) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active(self, user_id: uuid.UUID) -> Optional[User]:
        stmt = select(User).where(User.id == user_id, User.is_active.is_(True))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        email_payload = email.strip().lower()
        result = await self.db.execute(select(User).where(User.email == email_payload))
        return result.scalar_one_or_none()

    async def get_many(self, user_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, User]:
        ids = set(user_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(ids)))
        return {user.id: user for user in result.scalars().all()}

    async def list_all(self) -> Sequence[User]:
        result = await self.db.execute(select(User).order_by(User.created_at))
        return result.scalars().all()

    async def create(self, user: User) -> User:
        self.db.add(user)
        return await self._commit_and_refresh(user)

    async def save(self, user: User) -> User:
        self.db.add(user)
        return await self._commit_and_refresh(user)

    async def _commit_and_refresh(self, user: User) -> User:
        try:
            await self.db.commit()
            await self.db.refresh(user)
            return user
        except SQLAlchemyError:
            await self.db.rollback()
            raise
