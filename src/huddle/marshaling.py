"""Wire frame encoding.

Every frame is a JSON object::

    {"event": "<name>", "data": {...}, "ackId": "<opaque>"}

``ackId`` appears on client events that want a direct answer, and on the
matching ``ack`` frame the server sends back.
"""

import json
from dataclasses import dataclass, field
from typing import Any

from huddle.errors import ValidationFailed
from huddle.models import AckResult, WireModel

# Client -> server
JOIN_ROOM = "join-room"
LEAVE_ROOM = "leave-room"
SEND_MESSAGE = "send-message"
UPDATE_TASK_STATUS = "update-task-status"

# Server -> client
PEER_JOINED = "peer-joined"
PEER_LEFT = "peer-left"
NEW_MESSAGE = "new-message"
TASK_UPDATED = "task-updated"
ERROR = "error"
ACK = "ack"

EVENT_KEY = "event"
DATA_KEY = "data"
ACK_ID_KEY = "ackId"

MALFORMED_FRAME = "Malformed frame"


@dataclass(frozen=True)
class InboundFrame:
    """A decoded client frame."""

    event: str
    data: dict[str, Any] = field(default_factory=dict)
    ack_id: str | None = None


def decode_frame(raw: str | bytes | dict[str, Any]) -> InboundFrame:
    """Decode a client frame.

    Raises ValidationFailed if the frame is not a JSON object with a string
    ``event`` and an object (or absent) ``data``.
    """
    if isinstance(raw, dict):
        obj: Any = raw
    else:
        try:
            obj = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ValidationFailed(MALFORMED_FRAME) from exc

    if not isinstance(obj, dict) or not isinstance(obj.get(EVENT_KEY), str):
        raise ValidationFailed(MALFORMED_FRAME)

    data = obj.get(DATA_KEY) or {}
    if not isinstance(data, dict):
        raise ValidationFailed(MALFORMED_FRAME)

    ack_id = obj.get(ACK_ID_KEY)
    if ack_id is not None:
        if isinstance(ack_id, bool) or not isinstance(ack_id, str | int):
            raise ValidationFailed(MALFORMED_FRAME)
        ack_id = str(ack_id)

    return InboundFrame(event=obj[EVENT_KEY], data=data, ack_id=ack_id)


def encode_event(event: str, payload: WireModel | dict[str, Any]) -> dict[str, Any]:
    """Build a server event frame."""
    data = payload.to_wire() if isinstance(payload, WireModel) else payload
    return {EVENT_KEY: event, DATA_KEY: data}


def encode_ack(ack_id: str, result: AckResult) -> dict[str, Any]:
    """Build the ack frame answering ``ack_id``."""
    return {EVENT_KEY: ACK, ACK_ID_KEY: ack_id, DATA_KEY: result.to_wire()}


def dumps(frame: dict[str, Any]) -> str:
    """Serialize a frame for a text transport."""
    return json.dumps(frame, separators=(",", ":"))
