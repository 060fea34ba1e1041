import logging
from collections import deque
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from .connection import ControlConnectionManager, mask_command
from .data_connection import DataConnectionManager, PassiveEndpoint
from .errors import FTPError, NetworkError, ParseError, ProtocolError
from .parser import Parser, MessageStructure

logger = logging.getLogger(__name__)

# raw_passive_cmd failure stages
PASV_FAILED = -1
SEND_FAILED = -2
CONNECT_FAILED = -3
RESPONSE_FAILED = -4
PARSE_FAILED = -5
READ_FAILED = -6
COMPLETION_FAILED = -7

STAGE_NAMES = {
    PASV_FAILED: "passive negotiation",
    SEND_FAILED: "send",
    CONNECT_FAILED: "data connect",
    RESPONSE_FAILED: "initial response",
    PARSE_FAILED: "response parse",
    READ_FAILED: "data read",
    COMPLETION_FAILED: "completion response",
}


class ClientCommandHandler:
    def __init__(self, connection: ControlConnectionManager, parser: Optional[Parser] = None):
        self.conn = connection
        self.parser = parser or connection.parser
        self.data_addr: Optional[PassiveEndpoint] = None
        self.features = 0
        self.feature_names = set()
        # error behind the last negative raw_passive_cmd code
        self.last_error: Optional[FTPError] = None
        # history as dicts: {"time":..., "command":..., "raw":..., "parsed":..., "error":bool}, oldest dropped first
        self.history = deque(maxlen=connection.config.history_limit)

    def _record(self, command: str, response: str, **extra) -> MessageStructure:
        parsed = self.parser.parse_data(response)
        entry = {
            "time": datetime.now(timezone.utc),
            "command": mask_command(command),
            "raw": response,
            "parsed": parsed,
            "error": parsed.type in ("error", "unknown"),
        }
        entry.update(extra)
        self.history.append(entry)
        return parsed

    # Framing
    def send(self, command: str, *args):
        self.conn.send(command, *args)

    def expect(self, expected: str, label: str) -> str:
        """Reads one reply, records it under `label` and checks its code."""
        response = self.conn.receive()
        self._record(label, response)
        if not response.startswith(str(expected)):
            raise ProtocolError(response)
        return response

    def cmd(self, expected: str, command: str, *args) -> str:
        """Sends a command and returns the raw reply, which must start with `expected`."""
        self.send(command, *args)
        return self.expect(expected, " ".join([command, *(str(a) for a in args)]))

    def greeting(self) -> str:
        response = self.conn.receive()
        # 120: service ready in nnn minutes, the 220 follows
        while response.startswith("120"):
            self._record("CONNECT", response)
            response = self.conn.receive()
        self._record("CONNECT", response)
        if not response.startswith("220"):
            raise ProtocolError(response)
        return response

    # Simple commands
    def login(self, user: str, password: str):
        try:
            self.cmd("331", "USER", user)
        except ProtocolError as e:
            if not e.response.startswith("230"):
                raise
            # anonymous-style server, already logged in
            logger.info("Server accepted USER %s without a password", user)
            return
        self.cmd("230", "PASS", password)

    def pwd(self) -> str:
        return self.parser.parse_pwd_response(self.cmd("257", "PWD"))

    def cwd(self, path: str):
        self.cmd("250", "CWD", path)

    def mkd(self, path: str) -> str:
        response = self.cmd("257", "MKD", path)
        try:
            return self.parser.parse_pwd_response(response)
        except ParseError:
            return path

    def dele(self, path: str):
        self.cmd("250", "DELE", path)

    def rename(self, from_path: str, to_path: str):
        self.cmd("350", "RNFR", from_path)
        self.cmd("250", "RNTO", to_path)

    def type(self, mode: str = "I"):
        self.cmd("200", "TYPE", mode)

    def noop(self):
        self.cmd("200", "NOOP")

    def feat(self) -> set:
        response = self.cmd("211", "FEAT")
        self.features, self.feature_names = self.parser.parse_features(response)
        return self.feature_names

    def quit(self):
        self.cmd("221", "QUIT")
        self.conn.disconnect()

    def raw_cmd(self, command: str, *args) -> Tuple[int, str]:
        """Sends anything and returns (code, raw reply) without checking it; (-1, "") on failure."""
        label = " ".join([command, *(str(a) for a in args)])
        try:
            self.send(command, *args)
            response = self.conn.receive()
        except NetworkError as e:
            logger.warning(f"Raw command {mask_command(label)} failed - {e}")
            return -1, ""
        self._record(label, response)
        try:
            return self.parser.parse_code(response), response
        except ParseError as e:
            logger.warning(f"Raw command {mask_command(label)} failed - {e}")
            return -1, ""

    # Passive data connections
    def pasv(self) -> PassiveEndpoint:
        response = self.cmd("227", "PASV")
        self.data_addr = self.parser.parse_pasv_response(response, self.conn.host)
        return self.data_addr

    def open_data_connection(self, endpoint: PassiveEndpoint) -> DataConnectionManager:
        tls_context = self.conn.tls_context
        tls_session = getattr(self.conn.socket, 'session', None) if tls_context is not None else None
        data_conn = DataConnectionManager(endpoint, tls_context=tls_context, tls_session=tls_session,
                                          timeout=self.conn.config.timeout, encoding=self.conn.config.encoding)
        return data_conn.connect()

    def dial_for(self, label: str, endpoint: PassiveEndpoint) -> DataConnectionManager:
        """
        Opens the data connection for a command that was already sent.

        If the dial fails the server still answers that command (usually
        425), so the answer is read off the control channel before the
        NetworkError propagates.
        """
        try:
            return self.open_data_connection(endpoint)
        except NetworkError:
            self._collect_reply(label)
            raise

    def _collect_reply(self, label: str):
        try:
            response = self.conn.receive()
            self._record(label, response)
            # a 150 means the server is still waiting to transfer, its failure reply follows
            while response.startswith("1"):
                response = self.conn.receive()
                self._record(label, response)
        except NetworkError as e:
            logger.warning(f"{label}: no reply after failed data connection - {e}")

    def _fail(self, stage: int, command: str, error: FTPError) -> Tuple[int, None]:
        self.last_error = error
        logger.warning(f"{command}: {STAGE_NAMES[stage]} failed - {error}")
        return stage, None

    def raw_passive_cmd(self, command: str, *args, record_data: bool = True) -> Tuple[int, Optional[List[str]]]:
        """
        Runs a command whose answer comes over a passive data connection.

        Returns (completion code, data lines), or (code, None) when the server
        refuses with a code above 299, or a negative stage code from
        STAGE_NAMES on failure, in which case `last_error` holds the cause.
        With record_data=False the history entry leaves the data lines out.
        """
        label = " ".join([command, *(str(a) for a in args)])
        self.last_error = None
        try:
            endpoint = self.pasv()
        except FTPError as e:
            return self._fail(PASV_FAILED, label, e)
        try:
            self.send(command, *args)
        except NetworkError as e:
            return self._fail(SEND_FAILED, label, e)
        try:
            data_conn = self.dial_for(label, endpoint)
        except NetworkError as e:
            return self._fail(CONNECT_FAILED, label, e)

        with data_conn:
            try:
                response = self.conn.receive()
            except NetworkError as e:
                return self._fail(RESPONSE_FAILED, label, e)
            self._record(label, response)
            try:
                code = self.parser.parse_code(response)
            except ParseError as e:
                return self._fail(PARSE_FAILED, label, e)
            if code > 299:
                return code, None
            try:
                lines = data_conn.receive_lines()
            except NetworkError as e:
                return self._fail(READ_FAILED, label, e)

        try:
            response = self.conn.receive()
        except NetworkError as e:
            return self._fail(COMPLETION_FAILED, label, e)
        if record_data:
            self._record(label, response, data=''.join(lines))
        else:
            self._record(label, response)
        try:
            code = self.parser.parse_code(response)
        except ParseError as e:
            return self._fail(PARSE_FAILED, label, e)
        if code > 299:
            return code, None
        return code, lines

    # Helpers for UI
    def get_history(self):
        """Return a copy of the history list."""
        return list(self.history)

    def clear_history(self):
        self.history.clear()
