"""WebSocket terminal bridge for termbridge.

Public API:
    TerminalBridge -- Accepts terminal WebSockets and owns their sessions
    TerminalSession -- Per-connection state machine around a shell
    decode_message -- Decode one client frame
"""

from termbridge.terminal.bridge import TerminalBridge, WebSocketConnection
from termbridge.terminal.protocol import (
    ProtocolError,
    UnknownMessageType,
    decode_message,
    encode_output,
)
from termbridge.terminal.session import Connection, ConnectionClosed, TerminalSession

__all__ = [
    "Connection",
    "ConnectionClosed",
    "ProtocolError",
    "TerminalBridge",
    "TerminalSession",
    "UnknownMessageType",
    "WebSocketConnection",
    "decode_message",
    "encode_output",
]
