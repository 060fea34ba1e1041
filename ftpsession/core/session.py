import dataclasses
import logging
import ssl
from typing import BinaryIO, Callable, List, Optional, Tuple, Union

from .commands import ClientCommandHandler
from .config import ClientConfig
from .connection import ControlConnectionManager
from .data_connection import PassiveEndpoint
from .errors import FTPError, ParseError
from .tls import TLSState, TLSUpgrader
from .transfer import TransferEngine
from .walker import DirectoryWalker, VisitFunc

logger = logging.getLogger(__name__)

Address = Union[str, Tuple[str, int]]


def _port(value, address) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ParseError(f"Invalid port {value!r}", str(address)) from None


def split_address(address: Address) -> Tuple[str, int]:
    """Accepts "host", "host:port", "[v6]:port" or a (host, port) tuple."""
    if isinstance(address, tuple):
        host, port = address
        return host, _port(port, address)
    if address.startswith('['):
        host, _, rest = address[1:].partition(']')
        return host, _port(rest[1:], address) if rest.startswith(':') else 21
    if address.count(':') == 1:
        host, port = address.split(':')
        return host, _port(port, address)
    return address, 21


class Session:
    """
    One logged-in (or about to be) FTP control connection and everything
    that runs over it. Not safe for concurrent use.
    """

    def __init__(self, connection: ControlConnectionManager):
        self.conn = connection
        self.address = (connection.host, connection.port)
        self.debug = connection.config.debug
        self.handler = ClientCommandHandler(connection)
        self.transfer = TransferEngine(self.handler)
        self.walker = DirectoryWalker(self.handler)
        self.tls = TLSUpgrader(self.handler)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self):
        return f"Session(addr={self.address[0]}:{self.address[1]}, tls={self.tls_state.value})"

    @property
    def features(self) -> int:
        return self.handler.features

    @property
    def tls_state(self) -> TLSState:
        return self.tls.state

    @property
    def history(self) -> list:
        return self.handler.get_history()

    def login(self, user: str, password: str):
        self.handler.login(user, password)

    def pwd(self) -> str:
        return self.handler.pwd()

    def cwd(self, path: str):
        self.handler.cwd(path)

    def mkd(self, path: str) -> str:
        return self.handler.mkd(path)

    def dele(self, path: str):
        self.handler.dele(path)

    def rename(self, from_path: str, to_path: str):
        self.handler.rename(from_path, to_path)

    def type(self, mode: str):
        self.handler.type(mode)

    def noop(self):
        self.handler.noop()

    def feat(self) -> set:
        return self.handler.feat()

    def pasv(self) -> PassiveEndpoint:
        return self.handler.pasv()

    def raw_cmd(self, command: str, *args) -> Tuple[int, str]:
        return self.handler.raw_cmd(command, *args)

    def raw_passive_cmd(self, command: str, *args) -> Tuple[int, Optional[List[str]]]:
        return self.handler.raw_passive_cmd(command, *args)

    def stor(self, path: str, source: Union[BinaryIO, bytes]) -> int:
        return self.transfer.stor(path, source)

    def retr(self, path: str, sink: Callable[[BinaryIO], object]):
        return self.transfer.retr(path, sink)

    def upload_file(self, local_path: str, remote_path: Optional[str] = None) -> str:
        return self.transfer.upload_file(local_path, remote_path)

    def download_file(self, remote_path: str, local_path: str) -> str:
        return self.transfer.download_file(remote_path, local_path)

    def list(self, path: str) -> List[str]:
        return self.walker.list(path)

    def walk(self, path: str, visit: VisitFunc, depth_limit: int):
        self.walker.walk(path, visit, depth_limit)

    def auth_tls(self, context: Optional[ssl.SSLContext] = None):
        self.tls.auth_tls(context)

    def quit(self):
        self.handler.quit()

    def close(self):
        self.conn.disconnect()


def connect(address: Address, debug: bool = False, config: Optional[ClientConfig] = None) -> Session:
    """Opens the control connection and consumes the server greeting."""
    config = config or ClientConfig()
    if debug:
        config = dataclasses.replace(config, debug=True)

    host, port = split_address(address)
    conn = ControlConnectionManager(host, port, config)
    conn.connect()
    session = Session(conn)
    try:
        banner = session.handler.greeting()
    except FTPError:
        conn.disconnect()
        raise
    if config.debug:
        logger.info(f"Banner from {host}:{port}: {banner.strip()}")
    return session
