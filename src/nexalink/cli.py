"""`nexalink` command line: manage saved app-server connections."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from nexalink.display import print_connections, print_message
from nexalink.log_utils import build_log_config, configure_logging, log_event
from nexalink.store.connection_store import ConnectionStore
from nexalink.store.models import DEFAULT_COLOR_HEX
from nexalink.store.server import DetachedSession

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nexalink", description="Manage saved app-server connections.")
    parser.add_argument("--file", type=Path, default=None, help="Connections file (defaults to the config dir)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="Show saved connections")
    sub.add_parser("status", help="Show the connected/enabled summary")

    add = sub.add_parser("add", help="Add a connection")
    add.add_argument("name")
    add.add_argument("host")
    add.add_argument("port")
    add.add_argument("--color", default=DEFAULT_COLOR_HEX)

    for name, help_text in (
        ("remove", "Delete a connection"),
        ("enable", "Enable a connection"),
        ("disable", "Disable a connection"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("connection_id")

    color = sub.add_parser("color", help="Change a connection colour")
    color.add_argument("connection_id")
    color.add_argument("color")

    update = sub.add_parser("update", help="Edit a connection")
    update.add_argument("connection_id")
    update.add_argument("name")
    update.add_argument("host")
    update.add_argument("port")
    update.add_argument("--color", default=None)
    return parser


def _known(store: ConnectionStore, connection_id: str) -> bool:
    if any(connection.id == connection_id for connection in store.connections):
        return True
    print_message(f"Unknown connection: {connection_id}", error=True)
    return False


def run(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(build_log_config(log_file_name="nexalink-cli.log"))
    log_event(logger, "cli.command", command=args.command)

    store = ConnectionStore(DetachedSession, storage_path=args.file)
    try:
        command = args.command
        if command == "list":
            print_connections(store.connection_statuses)
            return 0
        if command == "status":
            print_message(store.connection_summary_label)
            return 0
        if command == "add":
            added = store.add_connection(args.name, args.host, args.port, args.color)
            if added is None:
                print_message("Name, host and a numeric port are required.", error=True)
                return 2
            print_message(f"Added {added.name} ({added.url}) as {added.id}")
            return 0

        if not _known(store, args.connection_id):
            return 1
        if command == "remove":
            store.delete_connection(args.connection_id)
        elif command == "enable":
            store.set_connection_enabled(True, args.connection_id)
        elif command == "disable":
            store.set_connection_enabled(False, args.connection_id)
        elif command == "color":
            store.set_connection_color(args.color, args.connection_id)
        elif command == "update":
            current = next(c for c in store.connections if c.id == args.connection_id)
            store.update_connection(
                args.connection_id,
                args.name,
                args.host,
                args.port,
                args.color if args.color is not None else current.color_hex,
            )
        print_connections(store.connection_statuses)
        return 0
    finally:
        store.close()


def main() -> None:
    try:
        raise SystemExit(run(sys.argv[1:]))
    except KeyboardInterrupt:
        raise SystemExit(130)
