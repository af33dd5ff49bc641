"""Control port session.

ControlClient owns one TCP connection to the daemon's control port. It
authenticates on connect, then sends commands one at a time and reads
their logical replies. Notifications that arrive while reading are passed
synchronously to every subscribed handler.

Usage:
    client = ControlClient("127.0.0.1", 9051)
    client.connect("secret")
    info = client.get_info("version")
    client.close()

The client performs no locking: callers sharing a session between threads
must serialize access themselves.
"""

import logging
import select
import socket
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from onionctl.control.commands import (
    AuthenticateCommand,
    ControlCommand,
    QuitCommand,
    SignalCommand,
    TakeOwnershipCommand,
)
from onionctl.control.exceptions import (
    AlreadyConnectedError,
    ConnectFailedException,
    ControlError,
    NotConnectedError,
)
from onionctl.control.hidden_service import (
    HIDDEN_SERVICE_OPTIONS,
    HiddenService,
    parse_hidden_services,
)
from onionctl.control.reader import LogicalReply, receive
from onionctl.control.replies import GetInfoReply, Reply, parse_key_values

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = "127.0.0.1"
DEFAULT_PORT = 9051

# Reply codes accepted in answer to AUTHENTICATE: OK, not needed
AUTH_ACCEPTED = (250, 251)

NotificationHandler = Callable[["ControlClient", Reply], None]


class SessionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"


class ControlStream:
    """
    Line-oriented wrapper around a connected socket.

    Owns the socket: closing the stream closes it. Incoming bytes are
    buffered so has_pending() can tell whether a line may be read without
    waiting on the peer.
    """

    def __init__(self, sock: socket.socket, encoding: str = "ascii", chunk_size: int = 4096):
        self.sock = sock
        self.encoding = encoding
        self.chunk_size = chunk_size
        self._buffer = b""
        self._eof = False

    def write(self, data: bytes) -> None:
        self.sock.sendall(data)

    def read_line(self) -> Optional[str]:
        """Return the next line with its line terminator removed, or None at EOF."""
        while b"\n" not in self._buffer:
            if self._eof:
                return None
            chunk = self.sock.recv(self.chunk_size)
            if not chunk:
                self._eof = True
                # A trailing unterminated line is dropped
                return None
            self._buffer += chunk

        line, self._buffer = self._buffer.split(b"\n", 1)
        if line.endswith(b"\r"):
            line = line[:-1]
        return line.decode(self.encoding, errors="replace")

    def has_pending(self) -> bool:
        if self._buffer or self._eof:
            return True
        readable, _, _ = select.select([self.sock], [], [], 0)
        return bool(readable)

    def close(self) -> None:
        self.sock.close()


class ControlClient:
    """
    Client for the daemon's control protocol.

    Lifecycle: DISCONNECTED -> CONNECTING -> AUTHENTICATED -> DISCONNECTED.
    Reconnecting requires an explicit close() first.
    """

    def __init__(
        self,
        address: str = DEFAULT_ADDRESS,
        port: int = DEFAULT_PORT,
        encoding: str = "ascii",
        timeout: Optional[float] = None,
    ):
        """
        Initialize client.

        Args:
            address: Control port address
            port: Control port number
            encoding: Encoding used to decode reply lines
            timeout: Optional socket timeout in seconds (None blocks forever)
        """
        self.address = address
        self.port = port
        self.encoding = encoding
        self.timeout = timeout

        self.state = SessionState.DISCONNECTED
        self._stream: Optional[ControlStream] = None
        self._handlers: List[NotificationHandler] = []

    def __enter__(self) -> "ControlClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def is_connected(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def subscribe(self, handler: NotificationHandler) -> NotificationHandler:
        """Register ``handler(client, reply)`` for notifications. Returns the handler."""
        self._handlers.append(handler)
        return handler

    def unsubscribe(self, handler: NotificationHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def _dispatch(self, reply: Reply) -> None:
        for handler in list(self._handlers):
            handler(self, reply)

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self, password: Optional[str] = None) -> None:
        """
        Connect and authenticate with a clear-text password.

        Raises:
            AlreadyConnectedError: If the session is not disconnected
            ConnectFailedException: If authentication was rejected or the
                connection failed. The session is left disconnected.
        """
        if self.state != SessionState.DISCONNECTED:
            raise AlreadyConnectedError(
                f"Session is {self.state.value}; close it before reconnecting"
            )

        logger.info(f"Connecting to control port {self.address}:{self.port}")
        self.state = SessionState.CONNECTING

        try:
            sock = socket.create_connection((self.address, self.port), timeout=self.timeout)
        except OSError as e:
            self.state = SessionState.DISCONNECTED
            raise ConnectFailedException(None, f"Unable to connect: {e}") from e
        except BaseException:
            self.state = SessionState.DISCONNECTED
            raise

        self._stream = ControlStream(sock, encoding=self.encoding)

        try:
            self._stream.write(AuthenticateCommand(password).to_bytes())
            replies = receive(self._stream, self._dispatch)
        except (OSError, ControlError) as e:
            self._release()
            raise ConnectFailedException(None, f"Unable to authenticate: {e}") from e
        except BaseException:
            # Handler errors and interrupts still release the socket
            self._release()
            raise

        status = replies[-1]
        if status.code not in AUTH_ACCEPTED:
            self._release()
            raise ConnectFailedException(status, f"Unable to authenticate: {status.arguments}")

        self.state = SessionState.AUTHENTICATED
        logger.info(f"Authenticated ({status.code} {status.arguments})")

    def close(self) -> None:
        """Close the connection. Safe to call any number of times."""
        if self._stream is not None:
            logger.info("Closing control connection")
        self._release()

    def _release(self) -> None:
        stream, self._stream = self._stream, None
        self.state = SessionState.DISCONNECTED
        if stream is None:
            return
        try:
            stream.close()
        except OSError as e:
            logger.debug(f"Ignoring error while closing socket: {e}")

    # ------------------------------------------------------------------
    # Command / response
    # ------------------------------------------------------------------

    def _require_connection(self) -> ControlStream:
        if self.state != SessionState.AUTHENTICATED or self._stream is None:
            raise NotConnectedError("Not connected.")
        return self._stream

    def send(self, command: ControlCommand) -> LogicalReply:
        """
        Send a command and block until its logical reply has been read.

        Raises:
            TypeError: If command is None
            NotConnectedError: If the session is not authenticated
            ConnectionClosedError: If the daemon closed the connection
        """
        if command is None:
            raise TypeError("command cannot be None")

        stream = self._require_connection()
        logger.debug(f">> {command!r}")
        stream.write(command.to_bytes())
        return receive(stream, self._dispatch)

    def read(self, blocking: bool = True) -> LogicalReply:
        """
        Read one logical reply without sending anything.

        With blocking=False an empty tuple is returned when no data is
        waiting. Notifications received meanwhile go to the subscribers.
        """
        stream = self._require_connection()
        return receive(stream, self._dispatch, blocking=blocking)

    # ------------------------------------------------------------------
    # Convenience operations
    # ------------------------------------------------------------------

    def get_info(self, key: str) -> GetInfoReply:
        return GetInfoReply(self.send(ControlCommand("GETINFO", key)))

    def get_conf(self, key: str) -> Dict[str, str]:
        return parse_key_values(self.send(ControlCommand("GETCONF", key)))

    def set_conf(self, arguments: str) -> LogicalReply:
        return self.send(ControlCommand("SETCONF", arguments))

    def set_events(self, *events: str) -> LogicalReply:
        """Ask the daemon to send notifications for ``events`` (empty clears)."""
        return self.send(ControlCommand("SETEVENTS", " ".join(events)))

    def save_config(self) -> LogicalReply:
        """
        Send SAVECONF, then drain replies that are already buffered.

        The drain is non-blocking: data the daemon sends later is left
        for the next read().

        Returns:
            The SAVECONF reply followed by any drained replies
        """
        replies = self.send(ControlCommand("SAVECONF"))
        return replies + self.read(blocking=False)

    def signal(self, name: str) -> LogicalReply:
        return self.send(SignalCommand(name))

    def take_ownership(self) -> LogicalReply:
        return self.send(TakeOwnershipCommand())

    def quit(self) -> LogicalReply:
        """Send QUIT and close the session."""
        try:
            return self.send(QuitCommand())
        finally:
            self.close()

    def hidden_services(self) -> List[HiddenService]:
        """Return the hidden services currently configured in the daemon."""
        return parse_hidden_services(
            self.send(ControlCommand("GETCONF", HIDDEN_SERVICE_OPTIONS))
        )

    def register_service(self, service: HiddenService) -> LogicalReply:
        """
        Register ``service`` alongside every already configured service.

        SETCONF replaces the whole option set, so existing services are
        resent with the new one.
        """
        if service is None:
            raise TypeError("service cannot be None")

        arguments = [service.to_config()]
        arguments.extend(s.to_config() for s in self.hidden_services())
        return self.set_conf(" ".join(arguments))

    def __repr__(self) -> str:
        return f"ControlClient({self.address!r}, {self.port}, state={self.state.value})"


def connect(
    address: str = DEFAULT_ADDRESS,
    port: int = DEFAULT_PORT,
    password: Optional[str] = None,
    **kwargs,
) -> ControlClient:
    """Create a client and connect it. Raises ConnectFailedException on failure."""
    client = ControlClient(address, port, **kwargs)
    client.connect(password)
    return client


def split_status(replies: LogicalReply) -> Tuple[Optional[Reply], LogicalReply]:
    """Return (final status line, preceding lines) of a logical reply."""
    if not replies:
        return None, ()
    return replies[-1], replies[:-1]
