"""
Tests for reader.py - assembling reply lines into logical replies.
"""

import unittest

from onionctl.control.exceptions import ConnectionClosedError, MalformedReplyError
from onionctl.control.reader import receive
from onionctl.control.replies import ReplyKind


class FakeSource:
    """In-memory line source."""

    def __init__(self, lines):
        self.lines = list(lines)
        self.reads = 0

    def read_line(self):
        self.reads += 1
        if not self.lines:
            return None
        return self.lines.pop(0)

    def has_pending(self):
        return bool(self.lines)


class TestReceive(unittest.TestCase):
    """Test cases for receive."""

    def setUp(self):
        self.notifications = []

    def notify(self, reply):
        self.notifications.append(reply)

    def test_single_status_line(self):
        source = FakeSource(["250 OK", "250 next"])
        replies = receive(source, self.notify)

        self.assertEqual(len(replies), 1)
        self.assertEqual(replies[0].code, 250)
        self.assertEqual(source.reads, 1)
        self.assertEqual(source.lines, ["250 next"])

    def test_notification_goes_to_sink(self):
        replies = receive(FakeSource(["650 NOTICE", "250 OK"]), self.notify)

        self.assertEqual(len(self.notifications), 1)
        self.assertEqual(self.notifications[0].code, 650)
        self.assertEqual(self.notifications[0].arguments, "NOTICE")
        self.assertEqual([r.raw for r in replies], ["250 OK"])

    def test_single_line_data_does_not_end_cycle(self):
        replies = receive(FakeSource(["250-version=1", "250 OK"]), self.notify)
        self.assertEqual(
            [r.kind for r in replies],
            [ReplyKind.SINGLE_LINE_DATA, ReplyKind.STATUS],
        )

    def test_multi_line_reply(self):
        lines = ["250+config-text=", "250 not a status here", "650 not an event here", ".", "250 OK"]
        replies = receive(FakeSource(lines), self.notify)

        self.assertEqual(
            [r.kind for r in replies],
            [
                ReplyKind.MULTI_LINE_DATA_START,
                ReplyKind.CONTINUATION_LINE,
                ReplyKind.CONTINUATION_LINE,
                ReplyKind.END_OF_MULTILINE,
                ReplyKind.STATUS,
            ],
        )
        self.assertEqual(self.notifications, [])

    def test_notifications_keep_receipt_order(self):
        events = []
        lines = ["650 BW 1 2", "250-a=1", "650 BW 3 4", "250-b=2", "250 OK"]

        replies = receive(FakeSource(lines), lambda r: events.append(r.raw))

        self.assertEqual(events, ["650 BW 1 2", "650 BW 3 4"])
        self.assertEqual([r.raw for r in replies], ["250-a=1", "250-b=2", "250 OK"])

    def test_multi_line_notification_block(self):
        lines = ["650+NS", "r relay1 AAAA", "s Fast Running", ".", "250 OK"]
        replies = receive(FakeSource(lines), self.notify)

        self.assertEqual([r.raw for r in replies], ["250 OK"])
        self.assertEqual(
            [r.kind for r in self.notifications],
            [
                ReplyKind.NOTIFICATION,
                ReplyKind.CONTINUATION_LINE,
                ReplyKind.CONTINUATION_LINE,
                ReplyKind.END_OF_MULTILINE,
            ],
        )

    def test_without_sink_notifications_are_dropped(self):
        replies = receive(FakeSource(["650 NOTICE", "250 OK"]))
        self.assertEqual(len(replies), 1)

    def test_end_of_stream_raises(self):
        with self.assertRaises(ConnectionClosedError):
            receive(FakeSource(["250-partial=1"]), self.notify)

    def test_end_of_stream_inside_block_raises(self):
        with self.assertRaises(ConnectionClosedError):
            receive(FakeSource(["250+data=", "line"]), self.notify)

    def test_malformed_line_aborts(self):
        source = FakeSource(["garbage", "250 OK"])
        with self.assertRaises(MalformedReplyError):
            receive(source, self.notify)
        self.assertEqual(source.lines, ["250 OK"])

    def test_non_blocking_without_data(self):
        source = FakeSource([])
        self.assertEqual(receive(source, self.notify, blocking=False), ())
        self.assertEqual(source.reads, 0)

    def test_non_blocking_with_data_completes_cycle(self):
        replies = receive(FakeSource(["250-a=1", "250 OK"]), self.notify, blocking=False)
        self.assertEqual(len(replies), 2)

    def test_non_blocking_notification_only(self):
        replies = receive(FakeSource(["650 BW 1 2"]), self.notify, blocking=False)

        self.assertEqual(replies, ())
        self.assertEqual(len(self.notifications), 1)

    def test_result_is_immutable(self):
        replies = receive(FakeSource(["250 OK"]), self.notify)
        self.assertIsInstance(replies, tuple)


if __name__ == "__main__":
    unittest.main()
