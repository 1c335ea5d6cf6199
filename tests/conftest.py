import os
import tempfile
import uuid
from pathlib import Path

_TEST_DIR = Path(tempfile.mkdtemp(prefix="sakany-tests-"))
APP_DB_PATH = _TEST_DIR / "app.db"

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{APP_DB_PATH}"
os.environ["HEARTBEAT_INTERVAL_SECONDS"] = "3600"
os.environ["CREATE_TABLES_ON_STARTUP"] = "true"
os.environ["EMAIL_SERVER"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from core.breaker import CircuitBreaker  # noqa: E402
from core.get_db import AsyncSessionLocal, Base, build_engine, build_sessionmaker  # noqa: E402
from models.models import User  # noqa: E402
from repos.auth_repo import AuthRepo  # noqa: E402


class FakeConnection:
    """Stands in for a websocket in registry and relay tests."""

    def __init__(self, fail_on_send: bool = False):
        self.sent: list[dict] = []
        self.closed_with: int | None = None
        self.fail_on_send = fail_on_send

    async def send_json(self, data):
        if self.fail_on_send:
            raise RuntimeError("connection reset")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None):
        self.closed_with = code

    def frames(self, frame_type: str) -> list[dict]:
        return [frame for frame in self.sent if frame.get("type") == frame_type]


@pytest.fixture
async def session_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'unit.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_sessionmaker(engine)
    await engine.dispose()


@pytest.fixture
def store_breaker():
    return CircuitBreaker(name="test-store", failure_threshold=3, trip_on=(OSError,))


@pytest.fixture
def make_db_user(session_factory):
    async def _make(name: str = "user", *, is_active: bool = True) -> User:
        user = User(
            email=f"{name}-{uuid.uuid4().hex[:8]}@example.com",
            name=name,
            is_active=is_active,
        )
        user.set_password("secret123")
        async with session_factory() as db:
            return await AuthRepo(db).create(user)

    return _make


@pytest.fixture
def outbox(monkeypatch):
    sent: list[dict] = []

    async def fake_two_factor(email, code, name):
        sent.append({"kind": "2fa", "email": email, "code": code})

    async def fake_reset(email, token, name):
        sent.append({"kind": "reset", "email": email, "token": token})

    async def fake_sms(phone_number, code, name):
        sent.append({"kind": "2fa-sms", "phone": phone_number, "code": code})

    monkeypatch.setattr("services.auth_service.send_two_factor_code", fake_two_factor)
    monkeypatch.setattr("services.auth_service.send_password_reset_link", fake_reset)
    monkeypatch.setattr("services.auth_service.send_two_factor_sms", fake_sms)
    return sent


@pytest.fixture
def client(outbox):
    from app import app

    if APP_DB_PATH.exists():
        APP_DB_PATH.unlink()
    with TestClient(app) as test_client:
        yield test_client


class ApiUser:
    def __init__(self, data: dict, token: str, password: str):
        self.data = data
        self.id = data["id"]
        self.email = data["email"]
        self.token = token
        self.password = password

    @property
    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture
def signup(client):
    """Registers and logs in a user through the HTTP API."""

    def _signup(name: str = "user", *, is_landlord: bool = False, admin: bool = False):
        email = f"{name}-{uuid.uuid4().hex[:8]}@example.com"
        password = "secret123"
        resp = client.post(
            "/v2/register",
            json={
                "email": email,
                "password": password,
                "name": name,
                "isLandlord": is_landlord,
            },
        )
        assert resp.status_code == 201, resp.text
        user_id = resp.json()["id"]

        if admin:
            promote_to_admin(client, uuid.UUID(user_id))

        resp = client.post("/v2/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        client.cookies.clear()
        body = resp.json()
        return ApiUser(body["user"], body["access_token"], password)

    return _signup


def promote_to_admin(client: TestClient, user_id: uuid.UUID):
    async def _promote():
        async with AsyncSessionLocal() as db:
            repo = AuthRepo(db)
            user = await repo.by_id(user_id)
            user.is_admin = True
            await repo.save(user)

    client.portal.call(_promote)


def ws_sync(ws):
    """Round-trips a ping so every frame sent before it has been handled."""
    ws.send_json({"type": "ping"})
    frame = ws.receive_json()
    while frame.get("type") != "pong":
        frame = ws.receive_json()
    return frame
