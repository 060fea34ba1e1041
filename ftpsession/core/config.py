import os
from dataclasses import dataclass
from typing import Optional


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ('1', 'true', 'yes')


@dataclass
class ClientConfig:
    """
    Tunables for one Session.

    timeout: socket timeout in seconds for control and data sockets, None blocks.
    drain_residual: discard bytes left in the read buffer after each final reply.
    encoding: text encoding of the control channel and of listing lines.
    chunk_size: block size used when streaming uploads.
    debug: trace wire traffic at INFO instead of DEBUG.
    history_limit: command history entries kept, the oldest are dropped first.
    """
    timeout: Optional[float] = None
    drain_residual: bool = True
    encoding: str = "utf-8"
    chunk_size: int = 8192
    debug: bool = False
    history_limit: int = 1000

    @classmethod
    def from_env(cls) -> "ClientConfig":
        timeout = os.getenv('FTP_TIMEOUT')
        return cls(
            timeout=float(timeout) if timeout else None,
            drain_residual=_env_flag('FTP_DRAIN_RESIDUAL', True),
            encoding=os.getenv('FTP_ENCODING', 'utf-8'),
            chunk_size=int(os.getenv('FTP_CHUNK_SIZE', '8192')),
            debug=_env_flag('FTP_DEBUG', False),
            history_limit=int(os.getenv('FTP_HISTORY_LIMIT', '1000')),
        )
