from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_db import get_db_async
from core.safe_handler import safe_handler
from schemas.schema import (
    ForgotPasswordIn,
    ResetPasswordIn,
    UserCreate,
    UserLogin,
    UserOut,
)
from services.auth_service import AuthService

router = APIRouter(tags=["User Authentication"])


@cbv(router)
class UserRoutes:
    @router.post("/register", status_code=201, response_model=UserOut)
    @safe_handler
    async def register(
        self,
        data: UserCreate,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await AuthService(db).register(data)

    @router.post("/login")
    @safe_handler
    async def login(
        self,
        data: UserLogin,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await AuthService(db).login(data, background_tasks)

    @router.post("/logout")
    @safe_handler
    async def logout(
        self,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await AuthService(db).logout()

    @router.post("/refresh")
    @safe_handler
    async def refresh(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await AuthService(db).refresh(request)

    @router.post("/forgot-password")
    @safe_handler
    async def forgot_password(
        self,
        payload: ForgotPasswordIn,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await AuthService(db).forgot_password(payload, background_tasks)

    @router.post("/reset-password")
    @safe_handler
    async def reset_password(
        self,
        payload: ResetPasswordIn,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await AuthService(db).reset_password(payload)
