import logging
import socket
import ssl
from dataclasses import dataclass
from typing import BinaryIO, List, Optional

from .errors import NetworkError, TransferError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PassiveEndpoint:
    host: str
    port: int
    advertised_host: str = ""


class DataConnectionManager:
    def __init__(self, endpoint: PassiveEndpoint, tls_context: Optional[ssl.SSLContext] = None,
                 tls_session: Optional[ssl.SSLSession] = None, timeout: Optional[float] = None,
                 encoding: str = "utf-8"):
        """
        Passive-mode data connection of the FTP client.

        When `tls_context` is set the socket is wrapped right after the TCP
        connect, reusing `tls_session` from the control channel if given.
        """
        self.endpoint = endpoint
        self.tls_context = tls_context
        self.tls_session = tls_session
        self.timeout = timeout
        self.encoding = encoding
        self.data_socket: Optional[socket.socket] = None
        self._reader: Optional[BinaryIO] = None

    def connect(self) -> "DataConnectionManager":
        """
        Opens the TCP connection to the endpoint and wraps it in TLS if needed.
        """
        ip, port = self.endpoint.host, self.endpoint.port
        try:
            sock = socket.create_connection((ip, port), timeout=self.timeout)
        except OSError as e:
            raise NetworkError(f"Failed to open data connection to {ip}:{port} - {e}") from e

        if self.tls_context is not None:
            try:
                sock = self.tls_context.wrap_socket(sock, server_hostname=ip, session=self.tls_session)
            except OSError as e:
                sock.close()
                raise NetworkError(f"TLS handshake on data connection failed - {e}") from e

        self.data_socket = sock
        logger.debug(f"[DATA] Connected to {ip}:{port} (tls={self.tls_context is not None})")
        return self

    def close(self):
        """
        Closes the data connection.
        """
        if self._reader is not None:
            self._reader.close()
            self._reader = None
        if self.data_socket:
            self.data_socket.close()
            self.data_socket = None
            logger.debug(f"[DATA] Disconnected from {self.endpoint.host}:{self.endpoint.port}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def stream(self) -> BinaryIO:
        """Readable binary stream over the data socket."""
        if self._reader is None:
            self._reader = self.data_socket.makefile('rb')
        return self._reader

    def receive_lines(self) -> List[str]:
        """
        Reads the data connection line by line until the server closes it.
        Lines keep their terminators.
        """
        lines = []
        try:
            for raw in self.stream():
                lines.append(raw.decode(self.encoding, errors='replace'))
        except OSError as e:
            raise NetworkError(f"Failed reading data connection - {e}") from e
        return lines

    def send_stream(self, source: BinaryIO, chunk_size: int = 8192) -> int:
        """
        Copies `source` into the data connection and returns the byte count.
        """
        total = 0
        while True:
            try:
                chunk = source.read(chunk_size)
            except Exception as e:
                raise TransferError(f"Failed reading upload source - {e}") from e
            if not chunk:
                break
            try:
                self.data_socket.sendall(chunk)
            except OSError as e:
                raise NetworkError(f"Failed writing data connection - {e}") from e
            total += len(chunk)

        # close_notify before the socket goes away, as ftplib does
        if isinstance(self.data_socket, ssl.SSLSocket):
            try:
                self.data_socket.unwrap()
            except OSError as e:
                raise NetworkError(f"TLS shutdown on data connection failed - {e}") from e
        return total
