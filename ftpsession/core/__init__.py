"""
Core FTP Client logic.
Includes connection managers, parser, command handler, transfers, TLS and
the directory walker.
"""

from .config import ClientConfig
from .connection import ControlConnectionManager
from .data_connection import DataConnectionManager, PassiveEndpoint
from .commands import ClientCommandHandler
from .errors import FTPError, NetworkError, ParseError, ProtocolError, TLSError, TransferError
from .parser import (
    Parser, MessageStructure, DirectoryEntry,
    FEATURE_MLST, FEATURE_NLST, FEATURE_EPLF, FEATURE_LIST_ONLY,
)
from .session import Session, connect
from .tls import TLSState, TLSUpgrader
from .transfer import TransferEngine
from .walker import DirectoryWalker, UNLIMITED

__all__ = [
    "ClientConfig",
    "ControlConnectionManager",
    "DataConnectionManager",
    "PassiveEndpoint",
    "ClientCommandHandler",
    "Parser",
    "MessageStructure",
    "DirectoryEntry",
    "FEATURE_MLST",
    "FEATURE_NLST",
    "FEATURE_EPLF",
    "FEATURE_LIST_ONLY",
    "FTPError",
    "NetworkError",
    "ParseError",
    "ProtocolError",
    "TLSError",
    "TransferError",
    "Session",
    "connect",
    "TLSState",
    "TLSUpgrader",
    "TransferEngine",
    "DirectoryWalker",
    "UNLIMITED",
]
