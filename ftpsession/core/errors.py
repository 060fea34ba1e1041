"""
Exception hierarchy shared by every layer of the client.
"""

from typing import Optional


class FTPError(Exception):
    """Base class for all client errors."""


class NetworkError(FTPError):
    """Dial, read or write failure on the control or a data socket."""


class TLSError(NetworkError):
    """The control channel cannot be upgraded from its current state."""


class ProtocolError(FTPError):
    """The server answered with a status code the operation does not accept."""

    def __init__(self, response: str):
        self.response = response
        self.code: Optional[int] = int(response[:3]) if response[:3].isdigit() else None
        super().__init__(response.strip())


class ParseError(FTPError):
    """A response or listing line does not have the expected shape."""

    def __init__(self, message: str, text: str = ""):
        self.text = text
        super().__init__(f"{message}: {text.strip()!r}" if text else message)


class TransferError(FTPError):
    """The caller-supplied source stream failed during an upload."""
