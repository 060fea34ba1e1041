import logging
from typing import Callable, List, Optional

from .commands import ClientCommandHandler, STAGE_NAMES
from .errors import NetworkError, ProtocolError
from .parser import DirectoryEntry, Parser

logger = logging.getLogger(__name__)

# depth_limit value that never stops the descent
UNLIMITED = -1

VisitFunc = Callable[[str, int, Optional[Exception]], None]


class DirectoryWalker:
    def __init__(self, handler: ClientCommandHandler, parser: Optional[Parser] = None):
        self.handler = handler
        self.parser = parser or handler.parser

    def list(self, path: str, record_data: bool = True) -> List[str]:
        """Raw MLSD lines of `path`, in the order the server sent them."""
        code, lines = self.handler.raw_passive_cmd("MLSD", path, record_data=record_data)
        if code < 0:
            if self.handler.last_error is not None:
                raise self.handler.last_error
            raise NetworkError(f"MLSD {path}: {STAGE_NAMES[code]} failed")
        if code > 299:
            raise ProtocolError(self.handler.conn.last_response)
        return lines

    def entries(self, path: str, record_data: bool = True) -> List[DirectoryEntry]:
        return [self.parser.parse_listing_line(line) for line in self.list(path, record_data) if line.strip()]

    def walk(self, path: str, visit: VisitFunc, depth_limit: int):
        """
        Calls visit(full_path, mode, None) for every file below `path`.

        The walk is depth-first and pre-order in server listing order: a
        subdirectory is explored completely as soon as it is listed.
        depth_limit counts the directory levels entered below `path`; 0 stays
        in `path` and UNLIMITED (any negative value) has no bound. Anything
        raised by `visit` or by a listing stops the whole walk.
        """
        logger.debug(f"Walking: '{path}' (depth limit {depth_limit})")
        base = path if path.endswith('/') else path + '/'

        # listings of a walk stay out of the history payloads
        for entry in self.entries(path, record_data=False):
            if entry.type == 'dir':
                if entry.name in ('.', '..'):
                    continue
                if depth_limit < 0:
                    self.walk(base + entry.name + '/', visit, UNLIMITED)
                elif depth_limit > 0:
                    self.walk(base + entry.name + '/', visit, depth_limit - 1)
            elif entry.type == 'file':
                visit(base + entry.name, entry.mode, None)
