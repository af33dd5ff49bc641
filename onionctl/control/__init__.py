"""Control protocol core.

- replies: line parser (Reply, ReplyKind, parse_line) and reply interpreters
- reader: receive(), which assembles lines into logical replies
- client: ControlClient session (connect, send, read, close)
- commands: outbound command encoding
"""

from onionctl.control.client import ControlClient, SessionState, connect
from onionctl.control.commands import AuthenticateCommand, ControlCommand, quote
from onionctl.control.exceptions import (
    AlreadyConnectedError,
    ConnectFailedException,
    ConnectionClosedError,
    ControlError,
    MalformedReplyError,
    NotConnectedError,
)
from onionctl.control.hidden_service import HiddenService
from onionctl.control.reader import receive
from onionctl.control.replies import GetInfoReply, Reply, ReplyKind, parse_line

__all__ = [
    "ControlClient",
    "SessionState",
    "connect",
    "AuthenticateCommand",
    "ControlCommand",
    "quote",
    "AlreadyConnectedError",
    "ConnectFailedException",
    "ConnectionClosedError",
    "ControlError",
    "MalformedReplyError",
    "NotConnectedError",
    "HiddenService",
    "receive",
    "GetInfoReply",
    "Reply",
    "ReplyKind",
    "parse_line",
]
