import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from core.date_helper import utcnow

from .frames import PING_FRAME

logger = logging.getLogger(__name__)

SUPERSEDED_CLOSE_CODE = 4000
EVICTED_CLOSE_CODE = 4408
SHUTDOWN_CLOSE_CODE = 1001
DEACTIVATED_CLOSE_CODE = 4403


class Connection(Protocol):
    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


@dataclass
class Session:
    user_id: UUID
    connection: Connection
    is_alive: bool = True
    connected_at: datetime = field(default_factory=utcnow)


class SessionRegistry:
    """Maps an online user id to its single live connection.

    A newer connection for the same user supersedes the older one, which is
    closed with ``SUPERSEDED_CLOSE_CODE``. Network I/O (sends, closes) always
    happens outside the registry lock.
    """

    def __init__(self):
        self._sessions: dict[UUID, Session] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, user_id: UUID) -> bool:
        return user_id in self._sessions

    async def register(self, user_id: UUID, connection: Connection) -> Connection | None:
        async with self._lock:
            previous = self._sessions.get(user_id)
            self._sessions[user_id] = Session(user_id=user_id, connection=connection)

        if previous and previous.connection is not connection:
            logger.info("Session for %s superseded by a newer connection", user_id)
            await self._close_quietly(
                previous.connection, SUPERSEDED_CLOSE_CODE, "Superseded by a newer connection"
            )
            return previous.connection
        return None

    async def unregister(self, user_id: UUID, connection: Connection | None = None) -> bool:
        async with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                return False
            if connection is not None and session.connection is not connection:
                return False
            del self._sessions[user_id]
        return True

    async def evict(self, user_id: UUID, code: int, reason: str) -> bool:
        async with self._lock:
            session = self._sessions.pop(user_id, None)
        if session is None:
            return False
        logger.info("Evicting session for %s: %s", user_id, reason)
        await self._close_quietly(session.connection, code, reason)
        return True

    def lookup(self, user_id: UUID) -> Connection | None:
        session = self._sessions.get(user_id)
        return session.connection if session else None

    def is_alive(self, user_id: UUID) -> bool:
        session = self._sessions.get(user_id)
        return bool(session and session.is_alive)

    def mark_alive(self, user_id: UUID, connection: Connection | None = None) -> bool:
        session = self._sessions.get(user_id)
        if session is None:
            return False
        if connection is not None and session.connection is not connection:
            return False
        session.is_alive = True
        return True

    def online_user_ids(self) -> list[UUID]:
        return list(self._sessions)

    async def send(self, user_id: UUID, payload: dict) -> bool:
        connection = self.lookup(user_id)
        if connection is None:
            return False
        try:
            await connection.send_json(payload)
        except Exception as e:
            logger.info("Push to %s failed, dropping session: %s", user_id, e)
            await self.unregister(user_id, connection)
            await self._close_quietly(connection, EVICTED_CLOSE_CODE, "Send failed")
            return False
        return True

    async def sweep(self) -> list[UUID]:
        """Evict sessions that missed the last probe, then probe the rest."""
        async with self._lock:
            dead = [s for s in self._sessions.values() if not s.is_alive]
            for session in dead:
                del self._sessions[session.user_id]
            probed = list(self._sessions.values())
            for session in probed:
                session.is_alive = False

        evicted = [session.user_id for session in dead]
        for session in dead:
            logger.info("Evicting unresponsive session for %s", session.user_id)
            await self._close_quietly(
                session.connection, EVICTED_CLOSE_CODE, "Heartbeat timeout"
            )

        for session in probed:
            try:
                await session.connection.send_json(PING_FRAME)
            except Exception as e:
                logger.info("Probe to %s failed, evicting: %s", session.user_id, e)
                if await self.unregister(session.user_id, session.connection):
                    evicted.append(session.user_id)
                await self._close_quietly(
                    session.connection, EVICTED_CLOSE_CODE, "Heartbeat failed"
                )
        return evicted

    async def close_all(self) -> None:
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            await self._close_quietly(
                session.connection, SHUTDOWN_CLOSE_CODE, "Server shutting down"
            )

    async def _close_quietly(self, connection: Connection, code: int, reason: str):
        try:
            await connection.close(code=code, reason=reason)
        except Exception as e:
            # the peer is usually already gone
            logger.debug("Closing connection failed: %s", e)
