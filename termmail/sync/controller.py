"""Sync controller — the single command loop that owns the mailbox session."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from termmail.imap.client import ImapSession, imap_session
from termmail.parsing.decoder import decode_message
from termmail.storage.store import MailboxStore
from termmail.sync.types import Command, FetchRange, ListEntry, Position

if TYPE_CHECKING:
    from termmail.config import ImapSettings

logger = logging.getLogger(__name__)


# ── View interface ─────────────────────────────────────────────────────────────


@runtime_checkable
class MailboxView(Protocol):
    """Receiver of the ordered list mutations produced by the controller.

    Every call is awaited before the next one is made, and all calls for one
    command complete before the next command is taken off the queue.
    """

    async def insert_at_start(self, entry: ListEntry) -> None:
        """Insert a row above every existing row."""
        ...

    async def insert_at_end(self, entry: ListEntry) -> None:
        """Insert a row below every existing row."""
        ...

    async def mark_exhausted(self) -> None:
        """Called once when the oldest message of the mailbox has been loaded."""
        ...


# ── Range arithmetic ───────────────────────────────────────────────────────────


def initial_range(mailbox_size: int, page_size: int) -> FetchRange:
    """The newest ``page_size`` messages of a mailbox holding ``mailbox_size``."""
    return FetchRange.clamped(mailbox_size - page_size + 1, mailbox_size)


def older_page_range(known_size: int, loaded: int, page_size: int) -> FetchRange:
    """The ``page_size`` messages just below the oldest loaded one."""
    stop = known_size - loaded
    return FetchRange.clamped(stop - page_size + 1, stop)


def new_mail_range(known_size: int, mailbox_size: int) -> FetchRange:
    """Messages that arrived since the mailbox held ``known_size`` messages."""
    return FetchRange(start=known_size + 1, stop=mailbox_size)


# ── Controller ─────────────────────────────────────────────────────────────────


class SyncController:
    """Serializes every mailbox request through one command loop.

    ``run()`` opens the session, performs the initial load and then takes
    commands off a FIFO queue one at a time.  Fetch ranges are always computed
    from store state that nothing else can change while the command runs, and
    the store is updated before the matching view instruction is emitted.

    Any protocol or decode failure propagates out of ``run()``: the loop does
    not continue after a torn fetch.  A page is decoded completely before any
    message of it is inserted, so a failed page leaves the store untouched.

    Usage::

        controller = SyncController(ImapSettings.from_env())
        task = asyncio.create_task(controller.run(view))
        controller.submit(Command.LOAD_MORE)
    """

    def __init__(self, settings: ImapSettings, store: MailboxStore | None = None) -> None:
        self._settings = settings
        self._store = store if store is not None else MailboxStore()
        self._queue: asyncio.Queue[Command] = asyncio.Queue()
        self._exhausted = False

    @property
    def store(self) -> MailboxStore:
        return self._store

    @property
    def exhausted(self) -> bool:
        """True once the oldest message of the mailbox has been loaded."""
        return self._exhausted

    def submit(self, command: Command) -> None:
        """Queue ``command`` for the loop and return immediately."""
        self._queue.put_nowait(command)

    def preview(self, index: int) -> str:
        """Preview text for the list row at ``index``, or "" if there is none."""
        try:
            return self._store.at(index).preview_text()
        except IndexError:
            return ""

    async def run(self, view: MailboxView) -> None:
        """Connect, load the first page, then serve commands until QUIT."""
        async with imap_session(self._settings) as session:
            await self._initial_load(session, view)
            while True:
                command = await self._queue.get()
                logger.debug("Command: %s", command.name)
                if command is Command.QUIT:
                    logger.info("Sync loop stopped")
                    return
                if command is Command.LOAD_MORE:
                    await self._load_more(session, view)
                elif command is Command.REFRESH:
                    await self._refresh(session, view)

    # ── Internal ───────────────────────────────────────────────────────────────

    async def _initial_load(self, session: ImapSession, view: MailboxView) -> None:
        """Select the mailbox and load its newest page, newest message first."""
        info = await session.select(self._settings.mailbox)
        self._store.set_known_mailbox_size(info.message_count)
        logger.info("Mailbox %s holds %d message(s)", info.name, info.message_count)

        fetch_range = initial_range(info.message_count, self._settings.page_size)
        inserted = await self._load_page(session, view, fetch_range, Position.APPEND)
        logger.info("Initial load: %d message(s) from %s", inserted, fetch_range)
        if fetch_range.reaches_first:
            await self._mark_exhausted(view)

    async def _load_more(self, session: ImapSession, view: MailboxView) -> None:
        """Load the next older page and append it below the loaded messages."""
        if self._exhausted:
            logger.debug("Load more: nothing older to fetch")
            return

        fetch_range = older_page_range(
            self._store.known_mailbox_size(), self._store.count(), self._settings.page_size
        )
        inserted = await self._load_page(session, view, fetch_range, Position.APPEND)
        logger.info("Load more: %d message(s) from %s", inserted, fetch_range)
        if fetch_range.reaches_first:
            await self._mark_exhausted(view)

    async def _refresh(self, session: ImapSession, view: MailboxView) -> None:
        """Re-select the mailbox and prepend whatever arrived since the last selection."""
        info = await session.select(self._settings.mailbox)
        known = self._store.known_mailbox_size()

        if info.message_count == known:
            logger.debug("Refresh: no new mail (%d message(s))", known)
            return
        if info.message_count < known:
            # Expunged messages renumber the mailbox; already-loaded rows keep
            # their identities and the recorded size is left alone.
            logger.warning(
                "Refresh: mailbox shrank from %d to %d message(s); ignoring",
                known,
                info.message_count,
            )
            return

        fetch_range = new_mail_range(known, info.message_count)
        inserted = await self._load_page(session, view, fetch_range, Position.PREPEND)
        self._store.set_known_mailbox_size(info.message_count)
        logger.info("Refresh: %d new message(s) from %s", inserted, fetch_range)

    async def _load_page(
        self,
        session: ImapSession,
        view: MailboxView,
        fetch_range: FetchRange,
        position: Position,
    ) -> int:
        """Fetch, decode and insert one page; return how many messages were new.

        APPEND pages are inserted newest first so the list reads top-down in
        reverse-chronological order.  PREPEND pages are inserted oldest first,
        each one going to the top, which leaves the newest at the very top.
        """
        if fetch_range.empty:
            return 0

        records = await session.fetch(fetch_range.start, fetch_range.stop)
        messages = [decode_message(record) for record in records]
        if position is Position.APPEND:
            messages.reverse()

        inserted = 0
        for message in messages:
            if not self._store.insert(message, position):
                continue
            entry = ListEntry.from_message(message)
            if position is Position.PREPEND:
                await view.insert_at_start(entry)
            else:
                await view.insert_at_end(entry)
            inserted += 1
        return inserted

    async def _mark_exhausted(self, view: MailboxView) -> None:
        self._exhausted = True
        logger.info("Reached the oldest message of the mailbox")
        await view.mark_exhausted()
