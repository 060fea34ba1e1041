#!/usr/bin/env python3
"""
Command-line entry point for ftpsession.

    ftpsession tree HOST[:PORT] [--user U] [--password P] [--depth N] [--tls] [--debug]
    ftpsession ui [--host 0.0.0.0] [--port 8501]

`tree` prints the remote directory tree, `ui` replaces the process with the
Streamlit client.
"""

import argparse
import logging
import os
import subprocess
import sys

from ftpsession.core import ClientConfig, FTPError, UNLIMITED, connect
from ftpsession.ui.tree import render_tree

logger = logging.getLogger("ftpsession")

APP_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'ui', 'app.py')


def print_tree(args) -> int:
    config = ClientConfig.from_env()
    try:
        session = connect(args.address, debug=args.debug, config=config)
    except FTPError as e:
        print(f"Can't connect -> {e}", file=sys.stderr)
        return 1

    with session:
        try:
            if args.tls:
                session.auth_tls()
            session.login(args.user, args.password)
        except FTPError as e:
            print(f"Can't login -> {e}", file=sys.stderr)
            return 1

        print(args.address)
        try:
            for line in render_tree(session, args.root, args.depth):
                print(line)
        except FTPError as e:
            print(f"Can't walk -> {e}", file=sys.stderr)
            return 1
        session.quit()
    return 0


def start_streamlit_client(args) -> int:
    """
    Start the Streamlit FTP client UI.
    """
    logger.info(f"Starting Streamlit FTP Client UI on {args.host}:{args.port}...")

    cmd = [
        'streamlit',
        'run',
        APP_PATH,
        f'--server.port={args.port}',
        f'--server.address={args.host}',
        '--logger.level=info',
        '--client.showErrorDetails=true'
    ]

    # Replace the current process with the Streamlit process for proper signal handling
    try:
        os.execvp(cmd[0], cmd)
    except OSError as e:
        logger.error(f"Failed to exec Streamlit: {e}")
        # Fallback to subprocess.run for better diagnostics
        try:
            subprocess.run(cmd, check=True)
        except subprocess.CalledProcessError as e2:
            logger.error(f"Streamlit exited with error code {e2.returncode}")
            return e2.returncode
        except OSError as e2:
            logger.error(f"Failed to start Streamlit: {e2}")
            return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ftpsession")
    sub = parser.add_subparsers(dest="command", required=True)

    tree = sub.add_parser("tree", help="Print the remote directory tree")
    tree.add_argument("address", help="host or host:port of the FTP server")
    tree.add_argument("--user", default="anonymous")
    tree.add_argument("--password", default="anonymous")
    tree.add_argument("--root", default="/", help="Directory to start from")
    tree.add_argument("--depth", type=int, default=UNLIMITED,
                      help="Directory levels to descend (-1 = unlimited)")
    tree.add_argument("--tls", action="store_true", help="Secure the session with AUTH TLS")
    tree.add_argument("--debug", action="store_true", help="Trace the control channel")
    tree.set_defaults(func=print_tree)

    ui = sub.add_parser("ui", help="Run the Streamlit client")
    ui.add_argument("--host", default="0.0.0.0", help="Host to bind Streamlit to")
    ui.add_argument("--port", type=int, default=8501, help="Port to expose Streamlit on")
    ui.set_defaults(func=start_streamlit_client)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if getattr(args, "debug", False) else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
