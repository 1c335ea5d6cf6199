"""
Tests for the message log: append, history and read receipts.
"""

import pytest
from sqlalchemy.exc import OperationalError

from core.breaker import CircuitBreaker
from core.exceptions import NotFound, StoreUnavailable, ValidationError
from realtime.conversation_ledger import ConversationLedger
from realtime.message_log import MessageLog


@pytest.fixture
def log(session_factory, store_breaker):
    return MessageLog(session_factory, store_breaker, max_length=50)


@pytest.fixture
def ledger(session_factory, store_breaker):
    return ConversationLedger(session_factory, store_breaker)


class TestAppend:
    async def test_append_then_list_round_trip(self, log, ledger, make_db_user):
        alice, bob = await make_db_user("alice"), await make_db_user("bob")

        stored = await log.append(alice.id, bob.id, "Is the flat still available?")
        convo = await ledger.touch(alice.id, bob.id)
        history = await log.list_for_conversation(convo.id)

        assert len(history) == 1
        assert history[0].id == stored.id
        assert history[0].sender_id == alice.id
        assert history[0].receiver_id == bob.id
        assert history[0].content == "Is the flat still available?"
        assert history[0].is_read is False
        assert history[0].read_at is None

    async def test_ids_increase_and_history_is_ascending(self, log, ledger, make_db_user):
        alice, bob = await make_db_user("alice"), await make_db_user("bob")

        first = await log.append(alice.id, bob.id, "one")
        second = await log.append(bob.id, alice.id, "two")
        third = await log.append(alice.id, bob.id, "three")
        convo = await ledger.touch(alice.id, bob.id)

        history = await log.list_for_conversation(convo.id)

        assert first.id < second.id < third.id
        assert [m.content for m in history] == ["one", "two", "three"]

    async def test_content_is_stripped(self, log, make_db_user):
        alice, bob = await make_db_user("alice"), await make_db_user("bob")

        stored = await log.append(alice.id, bob.id, "  hello  ")

        assert stored.content == "hello"

    @pytest.mark.parametrize("content", ["", "   ", "x" * 51])
    async def test_rejects_bad_content(self, log, make_db_user, content):
        alice, bob = await make_db_user("alice"), await make_db_user("bob")

        with pytest.raises(ValidationError):
            await log.append(alice.id, bob.id, content)

    async def test_rejects_message_to_self(self, log, make_db_user):
        alice = await make_db_user("alice")

        with pytest.raises(ValidationError):
            await log.append(alice.id, alice.id, "hi me")

    async def test_rejects_inactive_receiver(self, log, make_db_user):
        alice = await make_db_user("alice")
        gone = await make_db_user("gone", is_active=False)

        with pytest.raises(ValidationError):
            await log.append(alice.id, gone.id, "hello?")


class TestHistory:
    async def test_unknown_conversation_raises_not_found(self, log):
        with pytest.raises(NotFound):
            await log.list_for_conversation(12345)

    async def test_limit_returns_newest_page_ascending(self, log, ledger, make_db_user):
        alice, bob = await make_db_user("alice"), await make_db_user("bob")
        for i in range(5):
            await log.append(alice.id, bob.id, f"m{i}")
        convo = await ledger.touch(alice.id, bob.id)

        page = await log.list_for_conversation(convo.id, limit=2)
        older = await log.list_for_conversation(convo.id, limit=2, before_id=page[0].id)

        assert [m.content for m in page] == ["m3", "m4"]
        assert [m.content for m in older] == ["m1", "m2"]

    async def test_history_excludes_other_pairs(self, log, ledger, make_db_user):
        alice, bob = await make_db_user("alice"), await make_db_user("bob")
        carol = await make_db_user("carol")
        await log.append(alice.id, bob.id, "for bob")
        await log.append(alice.id, carol.id, "for carol")
        convo = await ledger.touch(alice.id, bob.id)

        history = await log.list_for_conversation(convo.id)

        assert [m.content for m in history] == ["for bob"]


class TestMarkRead:
    async def test_mark_read_flips_only_that_direction(self, log, make_db_user):
        alice, bob = await make_db_user("alice"), await make_db_user("bob")
        await log.append(alice.id, bob.id, "a1")
        await log.append(alice.id, bob.id, "a2")
        await log.append(bob.id, alice.id, "b1")

        updated = await log.mark_read(sender_id=alice.id, receiver_id=bob.id)

        assert updated == 2
        assert await log.unread_count(alice.id, bob.id) == 0
        assert await log.unread_count(bob.id, alice.id) == 1

    async def test_mark_read_is_idempotent(self, log, make_db_user):
        alice, bob = await make_db_user("alice"), await make_db_user("bob")
        await log.append(alice.id, bob.id, "hello")

        assert await log.mark_read(alice.id, bob.id) == 1
        assert await log.mark_read(alice.id, bob.id) == 0

    async def test_mark_read_sets_read_at(self, log, ledger, make_db_user):
        alice, bob = await make_db_user("alice"), await make_db_user("bob")
        await log.append(alice.id, bob.id, "hello")
        convo = await ledger.touch(alice.id, bob.id)

        await log.mark_read(alice.id, bob.id)
        (message,) = await log.list_for_conversation(convo.id)

        assert message.is_read is True
        assert message.read_at is not None


class TestStoreFailures:
    async def test_database_error_surfaces_as_store_unavailable(self, make_db_user):
        def broken_factory():
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        breaker = CircuitBreaker(name="broken", failure_threshold=2)
        log = MessageLog(broken_factory, breaker, max_length=50)
        alice, bob = await make_db_user("alice"), await make_db_user("bob")

        with pytest.raises(StoreUnavailable):
            await log.append(alice.id, bob.id, "hello")

    async def test_open_circuit_surfaces_as_store_unavailable(self, make_db_user):
        def broken_factory():
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        breaker = CircuitBreaker(name="broken", failure_threshold=1, base_recovery_time=60)
        log = MessageLog(broken_factory, breaker, max_length=50)
        alice, bob = await make_db_user("alice"), await make_db_user("bob")

        with pytest.raises(StoreUnavailable):
            await log.mark_read(alice.id, bob.id)
        assert breaker.state == "OPEN"
        with pytest.raises(StoreUnavailable):
            await log.mark_read(alice.id, bob.id)
