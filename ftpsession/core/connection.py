import socket
import ssl
import logging
from typing import Optional

from .config import ClientConfig
from .errors import NetworkError
from .parser import Parser

logger = logging.getLogger(__name__)


def mask_command(line: str) -> str:
    """Hides the argument of PASS in anything that gets logged or recorded."""
    if line[:5].upper() == "PASS ":
        return "PASS ****"
    return line


class ControlConnectionManager:
    """
    Control connection of one session: the socket, its read buffer and the
    framing of commands and replies.

    The read buffer always belongs to the current transport; `rebind` swaps
    the socket and resets the buffer together.
    """

    def __init__(self, host: str, port: int = 21, config: Optional[ClientConfig] = None,
                 parser: Optional[Parser] = None):
        self.host = host
        self.port = port
        self.config = config or ClientConfig()
        self.parser = parser or Parser()
        self.socket: Optional[socket.socket] = None
        self.tls_context: Optional[ssl.SSLContext] = None
        self.last_response = ""
        self.discarded_bytes = 0
        self._buffer = bytearray()
        self._trace = logger.info if self.config.debug else logger.debug

    @property
    def connected(self) -> bool:
        return self.socket is not None

    def connect(self):
        if self.socket is not None:
            raise NetworkError("Connection already established.")
        try:
            logger.info(f"Connecting to {self.host}:{self.port} (timeout={self.config.timeout}s)")
            sock = socket.create_connection((self.host, self.port), timeout=self.config.timeout)
        except OSError as e:
            logger.error(f"✗ Failed to connect to {self.host}:{self.port} - {e}")
            raise NetworkError(f"Failed to connect to {self.host}:{self.port} - {e}") from e
        self.rebind(sock)
        logger.info(f"✓ Connected to {self.host}:{self.port}")

    def rebind(self, sock: socket.socket):
        """Binds the connection to `sock`, dropping whatever the old transport had buffered."""
        if self._buffer:
            logger.warning("Dropping %d buffered bytes of the previous transport", len(self._buffer))
            self.discarded_bytes += len(self._buffer)
        self.socket = sock
        self._buffer = bytearray()

    def disconnect(self):
        if self.socket:
            try:
                logger.info(f"Closing connection to {self.host}:{self.port}")
                self.socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            self.socket.close()
            logger.info(f"✓ Disconnected from {self.host}:{self.port}")
        self.socket = None
        self.tls_context = None
        self._buffer = bytearray()

    def _require_socket(self) -> socket.socket:
        if self.socket is None:
            raise NetworkError("No connection established.")
        return self.socket

    def send(self, command: str, *args):
        """Writes `command` and its arguments as one CRLF-terminated line."""
        sock = self._require_socket()
        line = " ".join([command, *(str(a) for a in args)])
        self._trace(f"→ SEND: {mask_command(line)}")
        try:
            sock.sendall((line + "\r\n").encode(self.config.encoding))
        except OSError as e:
            raise NetworkError(f"Failed to send {command} - {e}") from e

    def _read_line(self) -> str:
        sock = self._require_socket()
        while True:
            idx = self._buffer.find(b"\n")
            if idx >= 0:
                raw = bytes(self._buffer[:idx + 1])
                del self._buffer[:idx + 1]
                line = raw.decode(self.config.encoding, errors='replace')
                self._trace(f"← RECV: {line.rstrip()}")
                return line
            try:
                chunk = sock.recv(4096)
            except OSError as e:
                raise NetworkError(f"Failed to read from {self.host}:{self.port} - {e}") from e
            if not chunk:
                raise NetworkError(f"Connection closed by {self.host}:{self.port}")
            self._buffer += chunk

    def receive(self) -> str:
        """
        Reads one complete (possibly multi-line) reply.

        After a final reply the bytes still sitting in the buffer are drained
        unless `drain_residual` is off. Preliminary 1xx replies never drain,
        their follow-up reply may already be buffered.
        """
        response = self.parser.read_response(self._read_line)
        self.last_response = response
        if self.config.drain_residual and not response.startswith('1'):
            self.drain()
        return response

    def drain(self) -> int:
        """Discards buffered bytes that belong to no reply and returns how many."""
        count = len(self._buffer)
        if count:
            logger.warning("Discarded %d residual bytes after reply: %r", count, bytes(self._buffer[:80]))
            self.discarded_bytes += count
            self._buffer = bytearray()
        return count
