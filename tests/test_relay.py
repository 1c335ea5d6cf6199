"""
Tests for the relay: append, touch, then push to the recipient if online.
"""

import json

import pytest

from conftest import FakeConnection

from core.exceptions import ConnectionLost, StoreUnavailable
from models.enums import ConnectionState
from realtime.chat_service import ChatService
from realtime.messaging_service import MessagingService
from repos.conversation_repo import ConversationRepo


@pytest.fixture
def messaging(session_factory):
    return MessagingService(session_factory, heartbeat_interval=3600, max_message_length=100)


def chat_frame(receiver_id, content):
    return json.dumps(
        {"type": "message", "receiverId": str(receiver_id), "content": content}
    )


class TestRelay:
    async def test_online_recipient_gets_exactly_one_push(self, messaging, make_db_user):
        alice, bob = await make_db_user("alice"), await make_db_user("bob")
        bob_conn = FakeConnection()
        await messaging.sessions.register(bob.id, bob_conn)

        message, delivered = await messaging.relay(alice.id, bob.id, "hello bob")

        assert delivered is True
        pushed = bob_conn.frames("message")
        assert len(pushed) == 1
        assert pushed[0]["message"]["id"] == message.id
        assert pushed[0]["message"]["content"] == "hello bob"
        assert pushed[0]["message"]["senderId"] == str(alice.id)

    async def test_offline_recipient_message_is_persisted(
        self, messaging, make_db_user, session_factory
    ):
        alice, bob = await make_db_user("alice"), await make_db_user("bob")

        message, delivered = await messaging.relay(alice.id, bob.id, "see you later")

        assert delivered is False
        async with session_factory() as db:
            convo = await ConversationRepo(db).find_by_pair(alice.id, bob.id)
        history = await messaging.messages.list_for_conversation(convo.id)
        assert [m.id for m in history] == [message.id]

    async def test_sender_is_not_pushed_its_own_message(self, messaging, make_db_user):
        alice, bob = await make_db_user("alice"), await make_db_user("bob")
        alice_conn = FakeConnection()
        await messaging.sessions.register(alice.id, alice_conn)

        await messaging.relay(alice.id, bob.id, "hello")

        assert alice_conn.frames("message") == []

    async def test_ledger_failure_still_pushes(self, messaging, make_db_user, monkeypatch):
        alice, bob = await make_db_user("alice"), await make_db_user("bob")
        bob_conn = FakeConnection()
        await messaging.sessions.register(bob.id, bob_conn)

        async def broken_touch(user_a, user_b):
            raise StoreUnavailable()

        monkeypatch.setattr(messaging.conversations, "touch", broken_touch)

        _, delivered = await messaging.relay(alice.id, bob.id, "still arrives")

        assert delivered is True
        assert len(bob_conn.frames("message")) == 1


class TestChatService:
    async def test_connection_lifecycle_states(self, messaging, make_db_user):
        alice = await make_db_user("alice")
        ws = FakeConnection()
        chat = ChatService(messaging, ws)

        assert chat.state == ConnectionState.CONNECTING
        await chat.on_connect(alice.id)
        assert chat.state == ConnectionState.ACTIVE

        await messaging.sessions.sweep()
        assert chat.state == ConnectionState.IDLE

        await chat.on_frame('{"type": "pong"}')
        assert chat.state == ConnectionState.ACTIVE

        await chat.on_disconnect()
        assert chat.state == ConnectionState.CLOSED
        assert messaging.sessions.lookup(alice.id) is None

    async def test_ping_is_answered_with_pong(self, messaging, make_db_user):
        alice = await make_db_user("alice")
        ws = FakeConnection()
        chat = ChatService(messaging, ws)
        await chat.on_connect(alice.id)

        await chat.on_frame('{"type": "ping"}')

        assert ws.frames("pong") == [{"type": "pong"}]

    async def test_malformed_frame_is_dropped(self, messaging, make_db_user):
        alice = await make_db_user("alice")
        ws = FakeConnection()
        chat = ChatService(messaging, ws)
        await chat.on_connect(alice.id)

        await chat.on_frame("{broken")
        await chat.on_frame('{"type": "shout", "content": "HI"}')

        assert ws.sent == []
        assert ws.closed_with is None
        assert messaging.sessions.lookup(alice.id) is ws

    async def test_invalid_message_is_dropped(self, messaging, make_db_user):
        alice = await make_db_user("alice")
        ws = FakeConnection()
        chat = ChatService(messaging, ws)
        await chat.on_connect(alice.id)

        await chat.on_frame(chat_frame(alice.id, "talking to myself"))

        assert ws.sent == []

    async def test_store_failure_sends_error_to_sender(
        self, messaging, make_db_user, monkeypatch
    ):
        alice, bob = await make_db_user("alice"), await make_db_user("bob")
        alice_ws, bob_ws = FakeConnection(), FakeConnection()
        alice_chat = ChatService(messaging, alice_ws)
        await alice_chat.on_connect(alice.id)
        await messaging.sessions.register(bob.id, bob_ws)

        async def broken_append(sender_id, receiver_id, content):
            raise StoreUnavailable()

        monkeypatch.setattr(messaging.messages, "append", broken_append)

        await alice_chat.on_frame(chat_frame(bob.id, "lost?"))

        assert len(alice_ws.frames("error")) == 1
        assert bob_ws.sent == []

    async def test_superseded_connection_disconnect_keeps_new_one(
        self, messaging, make_db_user
    ):
        alice = await make_db_user("alice")
        old_ws, new_ws = FakeConnection(), FakeConnection()
        old_chat = ChatService(messaging, old_ws)
        new_chat = ChatService(messaging, new_ws)

        await old_chat.on_connect(alice.id)
        await new_chat.on_connect(alice.id)
        assert old_chat.state == ConnectionState.CLOSED

        with pytest.raises(ConnectionLost):
            await old_chat.on_frame('{"type": "ping"}')
        await old_chat.on_disconnect()

        assert messaging.sessions.lookup(alice.id) is new_ws
        assert new_chat.state == ConnectionState.ACTIVE
