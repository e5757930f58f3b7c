"""Rich rendering for CLI output."""

from __future__ import annotations

from io import StringIO
from threading import Lock
from typing import Any, Iterable

from prompt_toolkit.formatted_text import ANSI  # type: ignore
from prompt_toolkit.shortcuts import print_formatted_text  # type: ignore
from rich.console import Console
from rich.table import Table
from rich.text import Text

from nexalink.store.models import ConnectionState, ConnectionStatus

_render_buffer = StringIO()
_render_console = Console(
    file=_render_buffer,
    force_terminal=True,
    color_system="standard",
    markup=False,
    highlight=False,
)
_render_lock = Lock()

_STATE_STYLES = {
    ConnectionState.CONNECTED: "green",
    ConnectionState.CONNECTING: "yellow",
    ConnectionState.FAILED: "red",
    ConnectionState.DISCONNECTED: "dim",
}


def render_to_ansi(*renderables: Any) -> str:
    with _render_lock:
        _render_buffer.seek(0)
        _render_buffer.truncate(0)
        _render_console.print(*renderables)
        return _render_buffer.getvalue()


def _print(*renderables: Any) -> None:
    output = render_to_ansi(*renderables)
    if output:
        print_formatted_text(ANSI(output), end="")


def connections_table(statuses: Iterable[ConnectionStatus]) -> Table:
    table = Table(title="Connections", show_lines=False)
    table.add_column("ID", no_wrap=True)
    table.add_column("Name")
    table.add_column("URL")
    table.add_column("Enabled")
    table.add_column("State")
    for status in statuses:
        table.add_row(
            status.id,
            Text(status.name, style=status.color_hex),
            status.url,
            "yes" if status.is_enabled else "no",
            Text(status.state_label, style=_STATE_STYLES.get(status.state, "")),
        )
    return table


def print_connections(statuses: Iterable[ConnectionStatus]) -> None:
    _print(connections_table(statuses))


def print_message(message: str, *, error: bool = False) -> None:
    _print(Text(message, style="red" if error else "cyan"))
