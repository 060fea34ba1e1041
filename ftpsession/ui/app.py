import sys
import os

# Ensure project root is on sys.path so `import ftpsession` resolves when Streamlit runs
# the script from a source checkout
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from datetime import datetime, timezone
import io
import threading
import time
import traceback
import logging

from ftpsession.core import ClientConfig, FTPError, Session, UNLIMITED, connect
from ftpsession.ui.tree import render_tree

import streamlit as st

# Configure logging for Streamlit app
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


st.set_page_config(page_title="ftpsession Client UI", layout="wide")

# --- Helpers -----------------------------------------------------------------

# A lightweight wrapper to run blocking network calls in a thread and capture exceptions
def run_in_thread(fn, *args, **kwargs):
    result = {"value": None, "error": None}
    def target():
        try:
            result["value"] = fn(*args, **kwargs)
        except Exception as e:
            result["error"] = e
    t = threading.Thread(target=target)
    t.start()
    return t, result


def wait_for(t, label: str):
    with st.spinner(label):
        while t.is_alive():
            time.sleep(0.05)


def open_session(host: str, port: int, timeout: float, user: str, password: str, use_tls: bool) -> Session:
    session = connect((host, port), config=ClientConfig(timeout=timeout))
    try:
        if use_tls:
            session.auth_tls()
        session.login(user, password)
    except FTPError:
        session.close()
        raise
    return session


def run_command(session: Session, verb: str, args: list, uploaded_file):
    """Maps a terminal line onto the Session API; unknown verbs go out raw."""
    if verb == "pwd":
        return session.pwd()
    if verb == "cwd":
        session.cwd(args[0])
        return f"Changed directory to {args[0]}"
    if verb == "mkd":
        return f"Created {session.mkd(args[0])}"
    if verb == "dele":
        session.dele(args[0])
        return f"Deleted {args[0]}"
    if verb == "rename":
        session.rename(args[0], args[1])
        return f"Renamed {args[0]} to {args[1]}"
    if verb == "type":
        session.type(args[0])
        return f"Type set to {args[0]}"
    if verb == "noop":
        session.noop()
        return "NOOP ok"
    if verb == "feat":
        return sorted(session.feat())
    if verb == "list":
        return "".join(session.list(args[0] if args else "."))
    if verb == "stor":
        if uploaded_file is None:
            raise ValueError("Select a file to upload using the uploader above.")
        remote = args[0] if args else uploaded_file.name
        sent = session.stor(remote, io.BytesIO(uploaded_file.getbuffer()))
        return f"STOR finished: {remote} ({sent} bytes)"
    if verb == "retr":
        buffer = io.BytesIO()
        session.retr(args[0], lambda stream: buffer.write(stream.read()))
        return ("retr", args[0], buffer.getvalue())
    code, line = session.raw_cmd(verb.upper(), *args)
    return f"{code} — {line.strip()}"


# --- UI ----------------------------------------------------------------------
st.title("ftpsession — Streamlit Client")

with st.sidebar:
    st.header("Connection")
    host = st.text_input("Host", value="127.0.0.1")
    port = st.number_input("Port", min_value=1, max_value=65535, value=21)
    timeout = st.number_input("Timeout (s)", min_value=1.0, max_value=60.0, value=10.0)
    user = st.text_input("User", value="anonymous")
    password = st.text_input("Password", value="anonymous", type="password")
    use_tls = st.checkbox("AUTH TLS", value=False)
    if st.button("Connect"):
        logger.info(f"[UI] Connect button clicked: {host}:{port}")
        t, result = run_in_thread(open_session, host, int(port), float(timeout), user, password, use_tls)
        wait_for(t, "Connecting...")
        if result["error"]:
            logger.error(f"[UI] Connection failed: {result['error']}")
            st.session_state["session"] = None
            tmp = st.session_state.get("tmp_history", [])
            tmp.append({
                "time": datetime.now(timezone.utc),
                "command": f"CONNECT {host}:{port}",
                "raw": str(result["error"]),
                "parsed": None,
                "error": True
            })
            st.session_state["tmp_history"] = tmp
            st.error(f"Connection failed: {result['error']}")
        else:
            st.session_state["session"] = result["value"]
            logger.info("[UI] Connection successful")
            st.success(f"Connected to {host}:{port}")
    if st.button("Disconnect"):
        logger.info("[UI] Disconnect button clicked")
        session = st.session_state.get("session")
        if session:
            t, result = run_in_thread(session.quit)
            wait_for(t, "Disconnecting...")
            if result["error"]:
                logger.error(f"[UI] Error on QUIT: {result['error']}")
                session.close()
            st.session_state["session"] = None
            st.info("Disconnected")


if "session" not in st.session_state:
    st.session_state["session"] = None

col1, col2 = st.columns([3, 1])

with col1:
    terminal_tab, tree_tab = st.tabs(["Terminal", "Tree"])

    with terminal_tab:
        cmd = st.text_input("Command", placeholder="e.g. pwd, cwd /pub, retr file.txt, SYST",
                            key="cmd_input")
        cmd_run = st.button("Run")

        # File upload for STOR
        uploaded_file = st.file_uploader("Upload file for STOR", key="upload_file")

        if cmd_run and cmd:
            logger.info(f"[UI] Command executed: {cmd}")
            session: Session = st.session_state.get("session")
            if not session:
                logger.warning("[UI] Not connected")
                st.error("Not connected. Connect first.")
            else:
                try:
                    parts = cmd.strip().split()
                    t, result = run_in_thread(run_command, session, parts[0].lower(), parts[1:], uploaded_file)
                    wait_for(t, "Running...")
                    if result["error"]:
                        logger.error(f"[UI] Command error: {result['error']}")
                        st.error(f"Error: {result['error']}")
                    else:
                        out = result["value"]
                        if isinstance(out, tuple) and out[0] == "retr":
                            _, remote, payload = out
                            st.success(f"RETR finished: {remote} ({len(payload)} bytes)")
                            st.download_button("Save file", data=payload, file_name=os.path.basename(remote))
                        elif isinstance(out, str) and "\n" in out:
                            st.text_area("Output", value=out, height=250)
                        else:
                            st.write(out)
                except Exception:
                    logger.error(f"[UI] Unhandled exception: {traceback.format_exc()}")
                    st.error(f"Unhandled exception:\n{traceback.format_exc()}")

    with tree_tab:
        root = st.text_input("Root", value="/")
        depth = st.number_input("Depth limit (-1 = unlimited)", min_value=-1, max_value=50, value=UNLIMITED)
        if st.button("Walk"):
            session: Session = st.session_state.get("session")
            if not session:
                st.error("Not connected. Connect first.")
            else:
                t, result = run_in_thread(render_tree, session, root, int(depth))
                wait_for(t, "Walking...")
                if result["error"]:
                    logger.error(f"[UI] Walk error: {result['error']}")
                    st.error(f"Error: {result['error']}")
                else:
                    st.code("\n".join([root] + result["value"]))

with col2:
    st.subheader("History")
    session: Session = st.session_state.get("session")
    if session is None:
        st.info("No history: not connected")
        tmp = st.session_state.get("tmp_history", [])
        for entry in reversed(tmp[-50:]):
            t = entry.get("time")
            time_str = t.isoformat() if isinstance(t, datetime) else str(t)
            with st.expander(f"{time_str} — {entry.get('command')}"):
                if entry.get("raw"):
                    st.code(entry.get("raw"))
                if entry.get("error"):
                    st.error("This entry had an error")
    else:
        hist = session.history
        if st.button("Clear History"):
            session.handler.clear_history()
            st.rerun()
        for entry in reversed(hist[-100:]):
            t = entry.get("time")
            time_str = t.isoformat() if isinstance(t, datetime) else str(t)
            with st.expander(f"{time_str} — {entry.get('command')}"):
                if entry.get("data") is not None:
                    st.text_area("Data", value=str(entry.get("data")), height=150)
                parsed = entry.get("parsed")
                if parsed:
                    st.write(f"Code: {parsed.code}")
                    st.write(f"Message: {parsed.message}")
                    st.write(f"Type: {parsed.type}")
                if entry.get("raw"):
                    st.code(entry.get("raw"))
                if entry.get("error"):
                    st.error("This entry had an error")


# Footer
st.markdown("---")
st.caption("ftpsession Streamlit UI — command history, directory tree and transfers.")
