import uuid
from datetime import datetime, timedelta, timezone

from fastapi import Request, WebSocket
from jose import ExpiredSignatureError, JWTError, jwt

from .exceptions import NotAuthenticated
from .settings import settings


def create_token(user_id: uuid.UUID, token_type: str, expires_in: timedelta) -> str:
    return jwt.encode(
        {
            "sub": str(user_id),
            "type": token_type,
            "exp": datetime.now(timezone.utc) + expires_in,
        },
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )


def create_access_token(user_id: uuid.UUID) -> str:
    return create_token(
        user_id, "access", timedelta(minutes=settings.ACCESS_EXPIRE_MINUTES)
    )


def create_refresh_token(user_id: uuid.UUID) -> str:
    return create_token(user_id, "refresh", timedelta(days=settings.REFRESH_EXPIRE_DAYS))


def decode_token(token: str, expected_type: str = "access") -> uuid.UUID:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise NotAuthenticated("Token expired")
    except JWTError:
        raise NotAuthenticated("Invalid token")

    if payload.get("type") != expected_type:
        raise NotAuthenticated("Invalid token type")

    user_id = payload.get("sub")
    if not user_id:
        raise NotAuthenticated("Token missing user ID")
    try:
        return uuid.UUID(user_id)
    except ValueError:
        raise NotAuthenticated("Invalid user ID format in token")


def extract_http_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    return request.cookies.get("access_token")


def extract_ws_token(websocket: WebSocket) -> str | None:
    return websocket.query_params.get("token") or websocket.cookies.get("access_token")


async def jwt_protect(request: Request) -> uuid.UUID:
    token = extract_http_token(request)
    if not token:
        raise NotAuthenticated()
    return decode_token(token)
