import io
import logging
import os
import shutil
from typing import BinaryIO, Callable, Optional, TypeVar, Union

from .commands import ClientCommandHandler

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransferEngine:
    """
    STOR/RETR over a passive data connection.

    Both directions follow the same frame: TYPE I, PASV, the command, the
    data connection, a 150 before any byte moves and a 226 once the data
    socket is closed.
    """

    def __init__(self, handler: ClientCommandHandler):
        self.handler = handler

    def stor(self, path: str, source: Union[BinaryIO, bytes]) -> int:
        """Uploads everything readable from `source` to `path` and returns the byte count."""
        if isinstance(source, (bytes, bytearray, memoryview)):
            source = io.BytesIO(source)

        self.handler.type("I")
        endpoint = self.handler.pasv()
        self.handler.send("STOR", path)
        with self.handler.dial_for(f"STOR {path}", endpoint) as data_conn:
            self.handler.expect("150", f"STOR {path}")
            sent = data_conn.send_stream(source, self.handler.conn.config.chunk_size)
        self.handler.expect("226", f"STOR {path}")
        logger.info(f"STOR {path}: {sent} bytes")
        return sent

    def retr(self, path: str, sink: Callable[[BinaryIO], T]) -> T:
        """
        Downloads `path`, handing the data stream to `sink`.

        Whatever `sink` raises propagates as is, after the data socket is
        closed and without waiting for the server's 226.
        """
        self.handler.type("I")
        endpoint = self.handler.pasv()
        self.handler.send("RETR", path)
        with self.handler.dial_for(f"RETR {path}", endpoint) as data_conn:
            self.handler.expect("150", f"RETR {path}")
            result = sink(data_conn.stream())
        self.handler.expect("226", f"RETR {path}")
        return result

    def upload_file(self, local_path: str, remote_path: Optional[str] = None) -> str:
        """
        Sube un archivo local al servidor.
        Si remote_path no se especifica, se usa el nombre del archivo local.
        """
        if remote_path is None:
            remote_path = os.path.basename(local_path)
        with open(local_path, 'rb') as f:
            self.stor(remote_path, f)
        return remote_path

    def download_file(self, remote_path: str, local_path: str) -> str:
        """
        Descarga un archivo desde el servidor y lo guarda en local_path.
        """
        with open(local_path, 'wb') as f:
            self.retr(remote_path, lambda stream: shutil.copyfileobj(stream, f))
        logger.info(f"[DATA] File downloaded to {local_path}")
        return local_path
