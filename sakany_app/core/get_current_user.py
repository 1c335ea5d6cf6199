import uuid

from fastapi import Depends, Request, WebSocket
from sqlalchemy.ext.asyncio import AsyncSession

from models.models import User
from repos.auth_repo import AuthRepo

from .exceptions import NotAuthenticated
from .get_db import get_db_async
from .validators import decode_token, extract_http_token, extract_ws_token, jwt_protect


async def get_current_user(
    user_id: uuid.UUID = Depends(jwt_protect),
    db: AsyncSession = Depends(get_db_async),
) -> User:
    user = await AuthRepo(db).get_active(user_id)
    if not user:
        raise NotAuthenticated("Not Authenticated")
    return user


async def get_current_user_ws(websocket: WebSocket, session_factory) -> User:
    token = extract_ws_token(websocket)
    if not token:
        raise NotAuthenticated("Missing access token")

    user_id = decode_token(token)

    claimed = websocket.query_params.get("userId")
    if claimed is not None and claimed != str(user_id):
        raise NotAuthenticated("userId does not match the access token")

    async with session_factory() as db:
        user = await AuthRepo(db).get_active(user_id)

    if not user:
        raise NotAuthenticated("User not found")
    return user


async def get_optional_user(
    request: Request, db: AsyncSession = Depends(get_db_async)
) -> User | None:
    token = extract_http_token(request)
    if not token:
        return None
    try:
        user_id = decode_token(token)
    except NotAuthenticated:
        return None
    return await AuthRepo(db).get_active(user_id)
