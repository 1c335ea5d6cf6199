import uuid
from typing import List

from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.models import User
from realtime.messaging_service import MessagingService, get_messaging
from schemas.schema import AdminUserUpdate, UserOut
from services.admin_service import AdminService

router = APIRouter(tags=["Admin"])


@cbv(router)
class AdminRoutes:
    @router.get("/admin/users", response_model=List[UserOut])
    @safe_handler
    async def list_users(
        self,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await AdminService(db).list_users(current_user=current_user)

    @router.patch("/admin/users/{user_id}", response_model=UserOut)
    @safe_handler
    async def update_user(
        self,
        user_id: uuid.UUID,
        data: AdminUserUpdate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
        messaging: MessagingService = Depends(get_messaging),
    ):
        return await AdminService(db, messaging).update_user(
            user_id=user_id, current_user=current_user, data=data
        )

    @router.delete("/admin/users/{user_id}", status_code=204)
    @safe_handler
    async def delete_user(
        self,
        user_id: uuid.UUID,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
        messaging: MessagingService = Depends(get_messaging),
    ):
        await AdminService(db, messaging).delete_user(
            user_id=user_id, current_user=current_user
        )
