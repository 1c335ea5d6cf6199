from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.models import User
from realtime.messaging_service import MessagingService, get_messaging
from schemas.schema import TwoFactorToggle, UserOut, UserUpdate
from services.profile_service import UserProfileService

router = APIRouter(tags=["User Profile"])


@cbv(router)
class UserProfileRoutes:
    @router.get("/user", response_model=UserOut)
    @safe_handler
    async def get(
        self,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await UserProfileService(db).get(current_user=current_user)

    @router.patch("/user/profile", response_model=UserOut)
    @safe_handler
    async def update(
        self,
        data: UserUpdate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await UserProfileService(db).update(current_user=current_user, data=data)

    @router.delete("/user/profile")
    @safe_handler
    async def delete(
        self,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
        messaging: MessagingService = Depends(get_messaging),
    ):
        return await UserProfileService(db, messaging).delete(current_user=current_user)

    @router.post("/user/2fa", response_model=UserOut)
    @safe_handler
    async def toggle_two_factor(
        self,
        data: TwoFactorToggle,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await UserProfileService(db).toggle_two_factor(
            current_user=current_user, data=data
        )
