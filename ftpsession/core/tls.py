import enum
import logging
import ssl
from typing import Optional

from .commands import ClientCommandHandler
from .errors import NetworkError, TLSError

logger = logging.getLogger(__name__)


class TLSState(enum.Enum):
    PLAIN = "plain"
    SECURING = "securing"
    SECURED = "secured"


class TLSUpgrader:
    """
    Explicit FTPS (AUTH TLS) on an open control connection.

    Once the server accepts AUTH TLS the state is SECURING until PBSZ and
    PROT have both succeeded. A session stuck in SECURING has an unknown
    transport and must be closed.
    """

    def __init__(self, handler: ClientCommandHandler):
        self.handler = handler
        self.state = TLSState.PLAIN

    def auth_tls(self, context: Optional[ssl.SSLContext] = None):
        if self.state is not TLSState.PLAIN:
            raise TLSError(f"Control channel is already {self.state.value}")

        conn = self.handler.conn
        self.handler.cmd("234", "AUTH", "TLS")
        self.state = TLSState.SECURING

        context = context or ssl.create_default_context()
        try:
            secure_socket = context.wrap_socket(conn.socket, server_hostname=conn.host)
        except OSError as e:
            raise NetworkError(f"TLS handshake with {conn.host}:{conn.port} failed - {e}") from e
        conn.rebind(secure_socket)
        # every data connection from now on is wrapped with the same context
        conn.tls_context = context

        self.handler.cmd("200", "PBSZ", "0")
        self.handler.cmd("200", "PROT", "P")
        self.state = TLSState.SECURED
        logger.info(f"✓ Control channel to {conn.host}:{conn.port} secured")
