import logging
import uuid

from fastapi import HTTPException

from core.breaker import db_breaker
from core.check_permission import CheckRolePermission
from core.mapper import ORMMapper
from models.models import User
from realtime.messaging_service import MessagingService
from repos.auth_repo import AuthRepo
from schemas.schema import UserOut

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(self, db, messaging: MessagingService | None = None):
        self.repo: AuthRepo = AuthRepo(db)
        self.messaging = messaging
        self.mapper: ORMMapper = ORMMapper()
        self.permission: CheckRolePermission = CheckRolePermission()

    async def _get_user(self, user_id: uuid.UUID) -> User:
        user = await self.repo.by_id(user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    async def _drop_session(self, user: User):
        if self.messaging and not user.is_active:
            await self.messaging.disconnect_user(user.id)

    async def list_users(self, current_user: User):
        async def handler():
            await self.permission.check_admin(current_user=current_user)
            users = await self.repo.list_all()
            return self.mapper.many(users, UserOut)

        return await db_breaker.call(handler)

    async def update_user(self, user_id: uuid.UUID, current_user: User, data):
        async def handler():
            await self.permission.check_admin(current_user=current_user)
            user = await self._get_user(user_id)

            update_data = {
                k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None
            }
            password = update_data.pop("password", None)
            if password:
                user.set_password(password)

            email = update_data.get("email")
            if email and email.strip().lower() != user.email:
                if await self.repo.get_by_email(email):
                    raise HTTPException(
                        status_code=400, detail="Email already registered"
                    )

            for key, value in update_data.items():
                setattr(user, key, value)
            user.normalize()

            await self.repo.save(user)
            logger.info("Admin %s updated user %s", current_user.id, user.id)
            await self._drop_session(user)
            return self.mapper.one(user, UserOut)

        return await db_breaker.call(handler)

    async def delete_user(self, user_id: uuid.UUID, current_user: User):
        async def handler():
            await self.permission.check_admin(current_user=current_user)
            if user_id == current_user.id:
                raise HTTPException(
                    status_code=400, detail="Admins cannot deactivate themselves"
                )
            user = await self._get_user(user_id)
            user.is_active = False
            await self.repo.save(user)
            await self._drop_session(user)
            logger.info("Admin %s deactivated user %s", current_user.id, user.id)

        return await db_breaker.call(handler)
