import logging
import stat
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Set, Tuple

from .data_connection import PassiveEndpoint
from .errors import ParseError

logger = logging.getLogger(__name__)

# Feature bitmask advertised by FEAT
FEATURE_MLST = 1
FEATURE_NLST = 2
FEATURE_EPLF = 4
FEATURE_LIST_ONLY = 8

RESPONSE_TYPES = {
    '1': 'preliminary',
    '2': 'success',
    '3': 'missing_info',
    '4': 'error',
    '5': 'error'
}


class MessageStructure:
    def __init__(self, code: str, message: str, type: str):
        self.code = code
        self.message = message
        self.type = type

    def __repr__(self):
        return f"MessageStructure(code={self.code!r}, type={self.type!r}, message={self.message[:40]!r})"


@dataclass
class DirectoryEntry:
    """One entry of a machine-readable (MLSD) listing."""
    name: str
    type: str
    perm: str = ""
    facts: Dict[str, str] = field(default_factory=dict)
    mode: int = 0

    @property
    def is_dir(self) -> bool:
        return self.type == 'dir'

    @property
    def is_file(self) -> bool:
        return self.type == 'file'


class Parser:
    def parse_data(self, data: str) -> MessageStructure:
        data = data.strip()
        code = data[:3]

        if not code.isdigit() or len(code) != 3:
            logger.error(f"Invalid FTP response format: {data} (code={code})")
            return MessageStructure("000", data, "unknown")

        # Everything after "code " or "code-"
        message = data[4:] if len(data) > 3 and data[3] in ' -' else data[3:]
        ans = MessageStructure(code, message, RESPONSE_TYPES.get(code[0], 'unknown'))
        logger.debug(f"Parsed response: code={code}, type={ans.type}, message={message[:50]}")
        return ans

    def parse_code(self, response: str) -> int:
        code = response[:3]
        if len(code) != 3 or not code.isdigit():
            raise ParseError("Response does not start with a status code", response)
        return int(code)

    def read_response(self, read_line: Callable[[], str]) -> str:
        """
        Reads one complete reply through `read_line`.

        A first line of the form "211-..." opens a multi-line reply which only
        ends at a line starting with "211 ". The returned text is every
        consumed line concatenated, terminators included.
        """
        line = read_line()
        if len(line) < 4 or line[3] != '-':
            return line

        closing = line[:3] + ' '
        lines = [line]
        while True:
            next_line = read_line()
            lines.append(next_line)
            if next_line[:4] == closing:
                break
        return ''.join(lines)

    def parse_pasv_response(self, message: str, host: Optional[str] = None) -> PassiveEndpoint:
        """Decodes "(h1,h2,h3,h4,p1,p2)" into an endpoint on `host`."""
        start = message.find('(')
        end = message.find(')', start + 1) if start >= 0 else -1
        if start < 0 or end < 0:
            raise ParseError("No passive address in PASV response", message)

        fields = message[start + 1:end].split(',')
        if len(fields) != 6:
            raise ParseError("PASV address must have six fields", message)
        try:
            numbers = [int(f.strip()) for f in fields]
        except ValueError as e:
            raise ParseError("Non-numeric field in PASV address", message) from e
        if any(n < 0 or n > 255 for n in numbers):
            raise ParseError("PASV address field out of range", message)

        advertised = '.'.join(str(n) for n in numbers[:4])
        port = numbers[4] * 256 + numbers[5]
        logger.debug(f"PASV parsed: {advertised}:{port}")
        return PassiveEndpoint(host=host or advertised, port=port, advertised_host=advertised)

    def parse_pwd_response(self, response: str) -> str:
        """Extracts the double-quoted path of a 257 reply; "" inside it is a literal quote."""
        start = response.find('"')
        if start < 0:
            raise ParseError("No quoted path in response", response)

        chars = []
        i = start + 1
        while i < len(response):
            c = response[i]
            if c == '"':
                if response[i + 1:i + 2] == '"':
                    chars.append('"')
                    i += 2
                    continue
                return ''.join(chars)
            chars.append(c)
            i += 1
        raise ParseError("Unterminated quoted path in response", response)

    def parse_listing_line(self, line: str) -> DirectoryEntry:
        """Parses "fact=value;fact=value; name\\r\\n" into a DirectoryEntry."""
        text = line.rstrip('\r\n')
        facts_part, sep, name = text.partition(' ')
        if not sep or not name:
            raise ParseError("Listing line has no name", line)

        facts = {}
        for fact in facts_part.split(';'):
            if not fact:
                continue
            key, eq, value = fact.partition('=')
            if not eq or not key:
                raise ParseError("Malformed fact in listing line", line)
            facts[key.lower()] = value

        entry_type = facts.get('type', '').lower()
        if entry_type in ('dir', 'cdir', 'pdir'):
            mode = stat.S_IFDIR
        elif entry_type == 'file':
            mode = stat.S_IFREG
        else:
            mode = 0
        if 'unix.mode' in facts:
            try:
                mode |= int(facts['unix.mode'], 8)
            except ValueError as e:
                raise ParseError("Invalid unix.mode fact", line) from e

        return DirectoryEntry(name=name, type=entry_type, perm=facts.get('perm', ''), facts=facts, mode=mode)

    def parse_features(self, response: str) -> Tuple[int, Set[str]]:
        """Returns the feature bitmask and feature names of a FEAT reply."""
        names = set()
        for line in response.splitlines()[1:-1]:
            token = line.strip().split(' ', 1)[0].upper()
            if token:
                names.add(token)

        mask = 0
        if 'MLST' in names:
            mask |= FEATURE_MLST
        else:
            mask |= FEATURE_LIST_ONLY
        if 'NLST' in names:
            mask |= FEATURE_NLST
        if 'EPLF' in names:
            mask |= FEATURE_EPLF
        return mask, names
