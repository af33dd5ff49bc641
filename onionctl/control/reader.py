"""
Assembles reply lines into logical replies.

A logical reply is every line the daemon sends for one command, up to and
including the terminating status line. Asynchronous notifications (code 650)
may arrive at any point; they are handed to the notification sink in the
order they were received and never become part of the logical reply.
"""

import logging
from typing import Callable, List, Optional, Protocol, Tuple

from onionctl.control.exceptions import ConnectionClosedError
from onionctl.control.replies import Reply, ReplyKind, parse_line

logger = logging.getLogger(__name__)

LogicalReply = Tuple[Reply, ...]
NotificationSink = Callable[[Reply], None]


class LineSource(Protocol):
    """Anything that yields decoded protocol lines."""

    def read_line(self) -> Optional[str]:
        """Return the next line without CRLF, or None at end of stream."""
        ...

    def has_pending(self) -> bool:
        """Return True if a line can be read without waiting on the peer."""
        ...


def receive(
    source: LineSource,
    notify: Optional[NotificationSink] = None,
    blocking: bool = True,
) -> LogicalReply:
    """
    Read exactly one logical reply from ``source``.

    Args:
        source: Line source to consume
        notify: Called synchronously with every notification line
        blocking: When False and nothing is pending, return an empty reply
            instead of waiting. Once a reply line other than a notification
            has been read, the cycle always runs to completion.

    Returns:
        Tuple of the replies making up the logical reply

    Raises:
        ConnectionClosedError: If the stream ends before a status line
        MalformedReplyError: If a line cannot be parsed
    """
    if not blocking and not source.has_pending():
        return ()

    replies: List[Reply] = []
    continuation = False
    # True while the open multi-line block belongs to a notification
    notification_block = False

    while True:
        line = source.read_line()
        if line is None:
            raise ConnectionClosedError(
                f"Connection closed after {len(replies)} reply line(s) "
                "without a status line"
            )

        logger.debug(f"<< {line}")
        reply = parse_line(line, continuation)

        if continuation and not notification_block:
            if reply.kind == ReplyKind.END_OF_MULTILINE:
                continuation = False
            replies.append(reply)
            continue

        if continuation or reply.kind == ReplyKind.NOTIFICATION:
            if continuation:
                continuation = notification_block = reply.kind != ReplyKind.END_OF_MULTILINE
            elif reply.opens_block:
                continuation = notification_block = True
            _deliver(notify, reply)
            # Nothing of a logical reply consumed yet, so polling may stop here
            if not blocking and not continuation and not replies and not source.has_pending():
                return ()
            continue

        replies.append(reply)

        if reply.kind == ReplyKind.MULTI_LINE_DATA_START:
            continuation = True
        elif reply.kind == ReplyKind.STATUS:
            return tuple(replies)


def _deliver(notify: Optional[NotificationSink], reply: Reply) -> None:
    if notify is not None:
        notify(reply)

