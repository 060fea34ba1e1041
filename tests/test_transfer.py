import io

import pytest

from ftpsession.core import DataConnectionManager, NetworkError, ProtocolError, TransferError


@pytest.fixture
def closed_data_connections(monkeypatch):
    """Records every data connection that gets closed."""
    closed = []
    original_close = DataConnectionManager.close

    def close(self):
        if self.data_socket is not None:
            closed.append(self.endpoint.port)
        original_close(self)

    monkeypatch.setattr(DataConnectionManager, "close", close)
    return closed


def test_stor_then_retr_round_trip(session, ftp_server):
    payload = bytes(range(256)) * 300 + b"\r\n\x00tail"
    sent = session.stor("/upload.bin", io.BytesIO(payload))
    assert sent == len(payload)
    assert ftp_server.files["/upload.bin"] == payload

    received = session.retr("/upload.bin", lambda stream: stream.read())
    assert received == payload
    assert "TYPE I" in ftp_server.received


def test_stor_accepts_bytes(session, ftp_server):
    session.stor("small.txt", b"hello")
    assert ftp_server.files["/small.txt"] == b"hello"


def test_stor_empty_source(session, ftp_server):
    assert session.stor("/empty", io.BytesIO()) == 0
    assert ftp_server.files["/empty"] == b""


def test_stor_rejected_before_transfer(session, ftp_server, closed_data_connections):
    ftp_server.replies["STOR"] = "553 Could not create file\r\n"
    with pytest.raises(ProtocolError) as excinfo:
        session.stor("/denied.txt", b"data")
    assert excinfo.value.response == "553 Could not create file\r\n"
    assert closed_data_connections == [session.handler.data_addr.port]


def test_stor_source_failure_is_transfer_error(session, closed_data_connections):
    class BrokenSource:
        def read(self, size):
            raise OSError("disk gone")

    with pytest.raises(TransferError):
        session.stor("/broken.txt", BrokenSource())
    assert closed_data_connections == [session.handler.data_addr.port]


def test_retr_missing_file(session):
    with pytest.raises(ProtocolError) as excinfo:
        session.retr("/nope.txt", lambda stream: stream.read())
    assert excinfo.value.code == 550


def test_retr_sink_error_propagates_unchanged(session, closed_data_connections):
    class SinkFailure(Exception):
        pass

    def sink(stream):
        raise SinkFailure("cannot store")

    with pytest.raises(SinkFailure):
        session.retr("/root.txt", sink)
    assert closed_data_connections == [session.handler.data_addr.port]


def test_upload_and_download_file(session, ftp_server, tmp_path):
    local = tmp_path / "notes.txt"
    local.write_bytes(b"line one\nline two\n")
    assert session.upload_file(str(local)) == "notes.txt"
    assert ftp_server.files["/notes.txt"] == b"line one\nline two\n"

    target = tmp_path / "copy.txt"
    session.download_file("/sub/a.txt", str(target))
    assert target.read_bytes() == b"alpha\n"


def test_data_connection_refused(session, ftp_server):
    ftp_server.replies["PASV"] = "227 Entering Passive Mode (127,0,0,1,0,1)\r\n"
    with pytest.raises(NetworkError):
        session.stor("/x", b"x")
    # the STOR reply is consumed, the control channel stays in step
    assert session.history[-1]["raw"].startswith("425")
    del ftp_server.replies["PASV"]
    session.noop()
    assert session.history[-1]["command"] == "NOOP"


def test_retr_data_connection_refused_keeps_session_usable(session, ftp_server):
    ftp_server.replies["PASV"] = "227 Entering Passive Mode (127,0,0,1,0,1)\r\n"
    with pytest.raises(NetworkError):
        session.retr("/root.txt", lambda stream: stream.read())
    del ftp_server.replies["PASV"]
    session.noop()
    assert session.retr("/root.txt", lambda stream: stream.read()) == b"root file\n"
