"""Wire codec for the terminal WebSocket protocol.

Frames are JSON objects tagged by ``type``::

    {"type": "terminal:init"}
    {"type": "terminal:input", "content": "ls\\n"}
    {"type": "terminal:resize", "dimensions": {"cols": 120, "rows": 40}}
    {"type": "terminal:output", "content": "..."}      (server -> client)

Incoming frames are decoded exactly once, here, into the
:data:`~termbridge.domain.models.ClientMessage` union.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import TypeAdapter, ValidationError

from termbridge.domain.models import ClientMessage, TerminalOutput

CLIENT_MESSAGE_TYPES = ("terminal:init", "terminal:input", "terminal:resize")

_client_message_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)


class ProtocolError(Exception):
    """Raised when a frame cannot be decoded into a client message."""


class UnknownMessageType(ProtocolError):
    """Raised when a frame carries a type tag the server does not accept."""

    def __init__(self, message_type: Any) -> None:
        super().__init__(f"Unknown message type: {message_type!r}")
        self.message_type = message_type


def decode_message(raw: str | bytes) -> ClientMessage:
    """Parse one JSON frame into a typed client message.

    Raises:
        UnknownMessageType: If the ``type`` tag is missing or not a
            client-to-server message.
        ProtocolError: If the frame is not valid JSON or its payload does
            not match the tagged variant.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ProtocolError(f"Invalid JSON frame: {e}") from e
    if not isinstance(data, dict):
        raise ProtocolError("Frame must be a JSON object")

    message_type = data.get("type")
    if message_type not in CLIENT_MESSAGE_TYPES:
        raise UnknownMessageType(message_type)

    try:
        return _client_message_adapter.validate_python(data)
    except ValidationError as e:
        raise ProtocolError(f"Invalid {message_type} payload: {e.error_count()} error(s)") from e


def encode_output(content: str) -> dict[str, str]:
    """Build a ``terminal:output`` frame ready for ``send_json``."""
    return TerminalOutput(content=content).model_dump()
