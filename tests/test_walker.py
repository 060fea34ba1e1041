import stat

import pytest

from ftpsession.core import UNLIMITED, NetworkError, ParseError, ProtocolError


def collect(session, path, depth_limit):
    visited = []
    session.walk(path, lambda p, mode, err: visited.append(p), depth_limit)
    return visited


def test_list_returns_raw_lines_in_server_order(session):
    assert session.list("/") == [
        "type=dir;perm=el; .\r\n",
        "type=dir;perm=el; ..\r\n",
        "type=file;perm=adfrw;size=10; root.txt\r\n",
        "type=dir;perm=flcdmpe; sub\r\n",
    ]


def test_list_missing_directory(session):
    with pytest.raises(ProtocolError) as excinfo:
        session.list("/missing")
    assert excinfo.value.code == 550


def test_list_pasv_failure_reraises_cause(session, ftp_server):
    ftp_server.replies["PASV"] = "425 No data ports\r\n"
    with pytest.raises(ProtocolError) as excinfo:
        session.list("/")
    assert excinfo.value.code == 425


@pytest.mark.parametrize("depth_limit, expected", [
    (1, ["/root.txt", "/sub/a.txt"]),
    (0, ["/root.txt"]),
    (UNLIMITED, ["/root.txt", "/sub/a.txt", "/sub/sub2/nested.txt"]),
    (-5, ["/root.txt", "/sub/a.txt", "/sub/sub2/nested.txt"]),
    (2, ["/root.txt", "/sub/a.txt", "/sub/sub2/nested.txt"]),
])
def test_walk_depth_limit(session, depth_limit, expected):
    assert collect(session, "/", depth_limit) == expected


def test_walk_is_preorder_in_listing_order(session, ftp_server):
    ftp_server.files.update({
        "/a/inner.txt": b"1",
        "/b.txt": b"2",
        "/c/deep/last.txt": b"3",
    })
    assert collect(session, "/", UNLIMITED) == [
        "/a/inner.txt",
        "/b.txt",
        "/c/deep/last.txt",
        "/root.txt",
        "/sub/a.txt",
        "/sub/sub2/nested.txt",
    ]


def test_walk_sibling_directories_share_depth(session, ftp_server):
    ftp_server.files.update({"/a/x/deep.txt": b"1", "/b/y/deep.txt": b"2"})
    visited = collect(session, "/", 1)
    assert "/a/x/deep.txt" not in visited
    assert "/b/y/deep.txt" not in visited
    visited = collect(session, "/", 2)
    assert "/a/x/deep.txt" in visited
    assert "/b/y/deep.txt" in visited


def test_walk_from_subdirectory_without_trailing_slash(session):
    assert collect(session, "/sub", 0) == ["/sub/a.txt"]


def test_walk_passes_file_mode(session):
    modes = []
    session.walk("/", lambda p, mode, err: modes.append((mode, err)), 0)
    assert modes and all(stat.S_ISREG(mode) and err is None for mode, err in modes)


def test_walk_visit_error_aborts(session):
    visited = []

    def visit(path, mode, err):
        visited.append(path)
        if path == "/sub/a.txt":
            raise RuntimeError("stop here")

    with pytest.raises(RuntimeError, match="stop here"):
        session.walk("/", visit, UNLIMITED)
    assert visited == ["/root.txt", "/sub/a.txt"]
    session.noop()


def test_walk_nested_list_error_aborts(session, ftp_server):
    visited = []

    def visit(path, mode, err):
        visited.append(path)
        # the next listing (of /sub/) fails
        ftp_server.replies["PASV"] = "421 Service closing\r\n"

    with pytest.raises(ProtocolError):
        session.walk("/", visit, UNLIMITED)
    assert visited == ["/root.txt"]


def test_walk_malformed_listing(session, monkeypatch):
    monkeypatch.setattr(session.walker, "list", lambda path, record_data=True: ["type=file;broken\r\n"])
    with pytest.raises(ParseError):
        session.walk("/", lambda *a: None, UNLIMITED)


def test_walk_on_closed_session(session):
    session.close()
    with pytest.raises(NetworkError):
        session.walk("/", lambda *a: None, UNLIMITED)


def test_walk_leaves_listing_data_out_of_history(session):
    collect(session, "/", UNLIMITED)
    assert session.history[-1]["command"] == "MLSD /sub/sub2/"
    assert all("data" not in entry for entry in session.history)
    session.list("/")
    assert "root.txt" in session.history[-1]["data"]
