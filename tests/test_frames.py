import json
import uuid
from datetime import datetime

import pytest

from core.exceptions import ValidationError
from models.models import Message
from realtime.frames import decode_frame, error_frame, message_frame
from schemas.schema import ChatFrame, PingFrame, PongFrame


class TestDecodeFrame:
    def test_decodes_message_frame(self):
        receiver = uuid.uuid4()
        frame = decode_frame(
            json.dumps({"type": "message", "receiverId": str(receiver), "content": "hi"})
        )

        assert isinstance(frame, ChatFrame)
        assert frame.receiver_id == receiver
        assert frame.content == "hi"

    def test_decodes_ping_and_pong(self):
        assert isinstance(decode_frame('{"type": "ping"}'), PingFrame)
        assert isinstance(decode_frame(b'{"type": "pong"}'), PongFrame)

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "{}",
            '{"type": "typing"}',
            '{"type": "message", "content": "hi"}',
            '{"type": "message", "receiverId": "not-a-uuid", "content": "hi"}',
            '{"type": "message", "receiverId": "%s", "content": "   "}' % uuid.uuid4(),
        ],
    )
    def test_rejects_malformed_frames(self, raw):
        with pytest.raises(ValidationError):
            decode_frame(raw)


def test_message_frame_uses_wire_names():
    message = Message(
        id=7,
        sender_id=uuid.uuid4(),
        receiver_id=uuid.uuid4(),
        content="hello",
        is_read=False,
        read_at=None,
        created_at=datetime(2024, 5, 1, 12, 30),
    )

    frame = message_frame(message)

    assert frame["type"] == "message"
    payload = frame["message"]
    assert payload["id"] == 7
    assert payload["senderId"] == str(message.sender_id)
    assert payload["receiverId"] == str(message.receiver_id)
    assert payload["isRead"] is False
    assert payload["readAt"] is None
    assert payload["createdAt"] == "2024-05-01T12:30:00+00:00"


def test_error_frame():
    assert error_frame("store down") == {"type": "error", "error": "store down"}
