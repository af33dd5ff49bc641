"""Exception hierarchy for the control protocol client.

* ControlError
   * MalformedReplyError
   * ConnectFailedException
   * NotConnectedError
   * AlreadyConnectedError
   * ConnectionClosedError
"""

from typing import Optional


class ControlError(Exception):
    """Base error for everything raised by onionctl.control."""


class MalformedReplyError(ControlError):
    """A reply line has a missing, non-numeric or out of range code."""

    def __init__(self, line: Optional[str], message: str = "Invalid reply."):
        super().__init__(f"{message} {line!r}")
        self.line = line


class ConnectFailedException(ControlError):
    """
    Connecting or authenticating to the control port failed.

    Carries the rejecting reply when the daemon answered; transport
    failures are chained as ``__cause__`` and leave ``reply`` as None.
    """

    def __init__(self, reply=None, message: str = "Unable to authenticate."):
        super().__init__(message)
        self.reply = reply

    @property
    def code(self) -> Optional[int]:
        return self.reply.code if self.reply is not None else None


class NotConnectedError(ControlError):
    """Raised when sending or reading on a session that is not authenticated."""


class AlreadyConnectedError(ControlError):
    """Raised by connect() when the session already holds a connection."""


class ConnectionClosedError(ControlError):
    """The stream ended before a logical reply was complete."""
