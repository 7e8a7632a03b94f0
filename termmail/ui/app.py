"""Textual UI — message list on the left, preview pane on the right."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, VerticalScroll
from textual.widgets import Footer, Header, Label, ListItem, ListView, Static

from termmail.imap.client import ImapError
from termmail.parsing.decoder import DecodeError
from termmail.sync.types import Command, ListEntry

if TYPE_CHECKING:
    from termmail.sync.controller import SyncController

logger = logging.getLogger(__name__)


class MailApp(App[None]):
    """Interactive mailbox browser.

    Implements the MailboxView protocol: the sync controller runs as a worker
    on the app's event loop and calls back into ``insert_at_start``,
    ``insert_at_end`` and ``mark_exhausted``.  Key handlers only queue
    commands, so the UI never waits on the network.

    A fatal synchronization error exits the app with return code 1 and the
    error message.
    """

    TITLE = "termmail"
    CSS = """
    #messages {
        width: 1fr;
        border: round $accent;
    }
    #preview-pane {
        width: 1fr;
        border: round $accent;
        padding: 1 1;
    }
    """
    BINDINGS = [
        Binding("f", "load_more", "Fetch more"),
        Binding("ctrl+r", "refresh", "Refresh"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, controller: SyncController) -> None:
        super().__init__()
        self._controller = controller
        self._exhausted = False

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal():
            yield ListView(id="messages")
            with VerticalScroll(id="preview-pane"):
                yield Static(id="preview", markup=False)
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#messages", ListView).border_title = "Messages"
        self.query_one("#preview-pane", VerticalScroll).border_title = "Preview"
        self.run_worker(self._sync(), name="sync", exclusive=True)

    # ── MailboxView ────────────────────────────────────────────────────────────

    async def insert_at_start(self, entry: ListEntry) -> None:
        list_view = self._list_view()
        had_rows = bool(list_view.children)
        highlighted = list_view.index
        await list_view.insert(0, [self._make_item(entry)])
        if had_rows and highlighted is not None:
            # Keep the same message highlighted now that it moved down one row.
            list_view.index = highlighted + 1
        self._after_insert(list_view)

    async def insert_at_end(self, entry: ListEntry) -> None:
        list_view = self._list_view()
        await list_view.append(self._make_item(entry))
        self._after_insert(list_view)

    async def mark_exhausted(self) -> None:
        self._exhausted = True
        self.refresh_bindings()

    # ── Actions ────────────────────────────────────────────────────────────────

    def action_load_more(self) -> None:
        self._controller.submit(Command.LOAD_MORE)

    def action_refresh(self) -> None:
        self._controller.submit(Command.REFRESH)

    async def action_quit(self) -> None:
        self._controller.submit(Command.QUIT)
        self.exit()

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        if action == "load_more" and self._exhausted:
            return None  # shown disabled in the footer
        return True

    # ── Events ─────────────────────────────────────────────────────────────────

    def on_list_view_highlighted(self, event: ListView.Highlighted) -> None:
        index = event.list_view.index
        if index is not None:
            self._show_preview(index)

    # ── Internal ───────────────────────────────────────────────────────────────

    async def _sync(self) -> None:
        try:
            await self._controller.run(self)
        except (ImapError, DecodeError) as exc:
            logger.error("Synchronization failed: %s", exc)
            self.exit(return_code=1, message=str(exc))

    def _list_view(self) -> ListView:
        return self.query_one("#messages", ListView)

    def _after_insert(self, list_view: ListView) -> None:
        if len(list_view.children) == 1:
            list_view.index = 0
            self._show_preview(0)
        self.sub_title = f"{len(list_view.children)} message(s)"

    def _show_preview(self, index: int) -> None:
        self.query_one("#preview", Static).update(self._controller.preview(index))

    @staticmethod
    def _make_item(entry: ListEntry) -> ListItem:
        return ListItem(Label(entry.line, markup=False), id=f"message-{entry.identity}")
