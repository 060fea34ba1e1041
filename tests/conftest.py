import socket

import pytest

from ftp_double import FakeFTPServer
from ftpsession.core import ClientConfig, ControlConnectionManager, connect

TREE = {
    "/root.txt": b"root file\n",
    "/sub/a.txt": b"alpha\n",
    "/sub/sub2/nested.txt": b"nested\n",
}


@pytest.fixture
def ftp_server():
    server = FakeFTPServer(files=TREE).start()
    yield server
    server.stop()


@pytest.fixture
def config():
    return ClientConfig(timeout=5)


@pytest.fixture
def session(ftp_server, config):
    s = connect(ftp_server.address, config=config)
    s.login("alice", "secret")
    yield s
    s.close()


@pytest.fixture
def wire():
    """A control connection bound to one end of a socketpair; the test plays the server."""
    client, server = socket.socketpair()
    client.settimeout(5)
    server.settimeout(5)

    def make(**config_kwargs):
        conn = ControlConnectionManager("127.0.0.1", 21, ClientConfig(**config_kwargs))
        conn.rebind(client)
        return conn, server

    yield make
    client.close()
    server.close()
