"""Outbound control commands.

A command renders itself as one ASCII line terminated by CRLF:

    NAME ARGS\r\n    or    NAME\r\n
"""

from typing import Optional

CRLF = "\r\n"


def quote(text: str) -> str:
    """Quote a string for the control protocol, escaping inner quotes."""
    return '"{}"'.format(text.replace('"', '\\"'))


class ControlCommand:
    """A control command with a name and an optional argument string."""

    def __init__(self, name: str, arguments: str = ""):
        self.name = name
        self.arguments = arguments or ""

    def to_line(self) -> str:
        if self.arguments:
            return f"{self.name} {self.arguments}{CRLF}"
        return f"{self.name}{CRLF}"

    def to_bytes(self) -> bytes:
        """Return the exact bytes to write to the control port."""
        return self.to_line().encode("ascii")

    def __bytes__(self) -> bytes:
        return self.to_bytes()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {self.arguments!r})"


class AuthenticateCommand(ControlCommand):
    """AUTHENTICATE with a clear-text password, or bare when there is none."""

    def __init__(self, password: Optional[str] = None):
        self.password = password or ""
        super().__init__("AUTHENTICATE", quote(self.password) if self.password else "")

    def __repr__(self) -> str:
        # Never echo the credential
        return "AuthenticateCommand(<hidden>)" if self.password else "AuthenticateCommand()"


class SignalCommand(ControlCommand):
    def __init__(self, signal: str):
        super().__init__("SIGNAL", signal)
        self.signal = signal


class QuitCommand(ControlCommand):
    def __init__(self):
        super().__init__("QUIT")


class TakeOwnershipCommand(ControlCommand):
    def __init__(self):
        super().__init__("TAKEOWNERSHIP")
