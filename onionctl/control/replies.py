"""
Reply line parsing for the control protocol.

Every line sent by the daemon is turned into an immutable Reply:

    250 OK                 -> Status
    250-version=0.4.8.9    -> SingleLineData
    250+config-text=       -> MultiLineDataStart, followed by raw lines
    .                      -> EndOfMultiLine (only in continuation mode)
    650 CIRC 1 BUILT       -> Notification (any separator)

parse_line() is pure; the caller tracks continuation mode.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence

from onionctl.control.exceptions import MalformedReplyError

MIN_CODE = 250
MAX_CODE = 1000
NOTIFICATION_CODE = 650
END_OF_MULTILINE = "."

SEPARATORS = (" ", "+", "-")


class ReplyKind(Enum):
    NONE = "None"
    STATUS = "Status"
    SINGLE_LINE_DATA = "SingleLineData"
    MULTI_LINE_DATA_START = "MultiLineDataStart"
    CONTINUATION_LINE = "ContinuationLine"
    END_OF_MULTILINE = "EndOfMultiLine"
    NOTIFICATION = "Notification"


@dataclass(frozen=True)
class Reply:
    """One parsed protocol line."""
    kind: ReplyKind
    raw: str
    code: Optional[int] = None
    arguments: str = ""
    separator: str = ""

    @property
    def is_ok(self) -> bool:
        return self.code == 250

    @property
    def opens_block(self) -> bool:
        """True if continuation lines follow this reply."""
        return self.separator == "+" and self.code is not None

    def __str__(self) -> str:
        return self.raw


def parse_line(line: str, continuation: bool = False) -> Reply:
    """
    Parse a single line received from the control port.

    Args:
        line: The line without its CRLF terminator
        continuation: True while inside a multi-line data block

    Returns:
        The parsed Reply

    Raises:
        MalformedReplyError: If the code is missing, not numeric or
            outside [250, 1000)
    """
    if line is None:
        raise MalformedReplyError(line, "Missing reply line.")

    if continuation:
        if line == END_OF_MULTILINE:
            return Reply(kind=ReplyKind.END_OF_MULTILINE, raw=line)
        return Reply(kind=ReplyKind.CONTINUATION_LINE, raw=line, arguments=line)

    code_text = ""
    separator = ""
    for char in line:
        if char in SEPARATORS:
            separator = char
            break
        code_text += char

    if not (code_text.isascii() and code_text.isdigit()):
        raise MalformedReplyError(line)

    code = int(code_text)
    if code < MIN_CODE or code >= MAX_CODE:
        raise MalformedReplyError(line)

    if separator == "+" and len(code_text) == 3:
        kind = ReplyKind.MULTI_LINE_DATA_START
    elif separator == "-":
        kind = ReplyKind.SINGLE_LINE_DATA
    else:
        kind = ReplyKind.STATUS

    if code == NOTIFICATION_CODE:
        kind = ReplyKind.NOTIFICATION

    arguments = line[len(code_text) + 1:] if separator else ""

    return Reply(
        kind=kind,
        raw=line,
        code=code,
        arguments=arguments,
        separator=separator,
    )


def parse_key_values(replies: Sequence[Reply]) -> Dict[str, str]:
    """
    Collect ``key=value`` pairs from a GETINFO/GETCONF logical reply.

    Single-line data (``250-key=value``) contributes one pair. A multi-line
    block (``250+key=`` ... ``.``) contributes its continuation lines joined
    by newlines as the value. A final ``250 key=value`` status line, as sent
    for single-key GETCONF, is included as well.
    """
    values: Dict[str, str] = {}
    block_key: Optional[str] = None
    block_lines = []

    for reply in replies:
        if reply.kind == ReplyKind.MULTI_LINE_DATA_START:
            block_key = reply.arguments.split("=", 1)[0]
            block_lines = []
        elif reply.kind == ReplyKind.CONTINUATION_LINE and block_key is not None:
            block_lines.append(reply.arguments)
        elif reply.kind == ReplyKind.END_OF_MULTILINE and block_key is not None:
            values[block_key] = "\n".join(block_lines)
            block_key = None
        elif reply.kind in (ReplyKind.SINGLE_LINE_DATA, ReplyKind.STATUS):
            if reply.is_ok and "=" in reply.arguments:
                key, value = reply.arguments.split("=", 1)
                values[key] = value

    return values


class GetInfoReply:
    """
    Interprets the logical reply of a single-key GETINFO command.

    ``is_ok`` is True when the daemon returned a value for the key and the
    final status line is 250.
    """

    def __init__(self, replies: Sequence[Reply]):
        self.replies = tuple(replies)
        self.is_ok = False
        self.key: Optional[str] = None
        self.value: Optional[str] = None

        if not self.replies:
            return

        final = self.replies[-1]
        if final.kind != ReplyKind.STATUS or not final.is_ok:
            return

        values = parse_key_values(self.replies[:-1])
        if not values:
            return

        self.key, self.value = next(iter(values.items()))
        self.is_ok = True

    def __repr__(self) -> str:
        return f"GetInfoReply(is_ok={self.is_ok}, key={self.key!r}, value={self.value!r})"
