from pydantic import ValidationError as PydanticValidationError

from core.exceptions import ValidationError
from core.mapper import ORMMapper
from schemas.schema import InboundFrame, MessageOut, inbound_frame_adapter

PING_FRAME = {"type": "ping"}
PONG_FRAME = {"type": "pong"}


def decode_frame(raw: str | bytes) -> InboundFrame:
    """Validate a raw frame into one of the known frame types.

    Unknown types, broken JSON and missing fields all raise
    ``ValidationError`` before any business logic sees the payload.
    """
    try:
        return inbound_frame_adapter.validate_json(raw)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ())) or 'frame'}: {err.get('msg')}"
            for err in e.errors()
        )
        raise ValidationError(f"Malformed frame: {problems}") from e


def message_frame(message) -> dict:
    return {"type": "message", "message": ORMMapper.wire(message, MessageOut)}


def error_frame(error: str) -> dict:
    return {"type": "error", "error": error}
