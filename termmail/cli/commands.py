"""CLI command implementations — both commands drive a SyncController."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import click
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from termmail.imap.client import ImapError
from termmail.parsing.decoder import DecodeError
from termmail.parsing.types import format_addresses
from termmail.sync.controller import SyncController
from termmail.sync.types import Command, ListEntry
from termmail.ui.app import MailApp

if TYPE_CHECKING:
    from termmail.config import ImapSettings

logger = logging.getLogger(__name__)
console = Console(width=200)


@click.command()
@click.pass_obj
def browse(settings: ImapSettings) -> None:
    """Open the interactive mailbox browser (f: fetch more, ctrl+r: refresh, q: quit)."""
    app = MailApp(SyncController(settings))
    app.run()
    if app.return_code:
        raise SystemExit(app.return_code)


class _PageView:
    """MailboxView for headless use: rows are read back from the store afterwards."""

    def __init__(self) -> None:
        self.exhausted = False

    async def insert_at_start(self, entry: ListEntry) -> None:
        pass

    async def insert_at_end(self, entry: ListEntry) -> None:
        pass

    async def mark_exhausted(self) -> None:
        self.exhausted = True


async def _load_first_page(controller: SyncController, view: _PageView) -> None:
    # QUIT is queued before the loop starts, so run() returns right after the
    # initial load.
    controller.submit(Command.QUIT)
    await controller.run(view)


@click.command(name="ls")
@click.pass_obj
def list_messages(settings: ImapSettings) -> None:
    """Print the newest page of the mailbox and exit."""
    controller = SyncController(settings)
    view = _PageView()
    try:
        asyncio.run(_load_first_page(controller, view))
    except (ImapError, DecodeError) as exc:
        raise click.ClickException(str(exc)) from exc

    store = controller.store
    if not len(store):
        console.print(f"[yellow]Mailbox {escape(settings.mailbox)} is empty.[/yellow]")
        return

    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", justify="right")
    table.add_column("From", max_width=32)
    table.add_column("Subject", max_width=60)
    table.add_column("Date", width=19)
    table.add_column("Att", width=3, justify="right")

    for message in store:
        table.add_row(
            str(message.identity),
            escape(format_addresses(message.sender[:1])),
            escape(message.subject),
            message.date.strftime("%Y-%m-%d %H:%M:%S"),
            str(len(message.attachments)) if message.attachments else "",
        )

    console.print(f"\n[bold]{escape(settings.mailbox)}[/bold]\n", highlight=False)
    console.print(table)
    shown, total = len(store), store.known_mailbox_size()
    if view.exhausted:
        console.print(f"  [dim]{shown} message(s)[/dim]")
    else:
        console.print(f"  [dim]Newest {shown} of {total} message(s)[/dim]")
