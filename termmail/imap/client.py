"""IMAP session — wraps the blocking imapclient API behind a typed async API."""

from __future__ import annotations

import asyncio
import functools
import logging
import queue
import threading
from collections.abc import AsyncIterator, Callable
from concurrent.futures import Future
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError, LoginError

from termmail.imap.types import MailboxInfo, RawMessage

if TYPE_CHECKING:
    from termmail.config import ImapSettings

logger = logging.getLogger(__name__)

# PEEK keeps the \Seen flag untouched; the server answers under the BODY[] key.
_FETCH_ITEM = "BODY.PEEK[]"
_BODY_KEY = b"BODY[]"

_T = TypeVar("_T")


class ImapError(Exception):
    """Base class for every failure raised by the IMAP session."""


class ImapConnectionError(ImapError):
    """The server could not be reached or the TLS handshake failed."""


class ImapAuthError(ImapError):
    """The server rejected the login."""


class ImapSelectError(ImapError):
    """Selecting (or re-selecting) the mailbox failed."""


class ImapFetchError(ImapError):
    """A FETCH over a sequence range failed."""


class ImapTimeout(ImapError):
    """A call did not complete within the configured socket timeout."""


class _SessionWorker:
    """One daemon thread that runs queued blocking calls in submission order.

    A daemon thread is not joined at interpreter exit, so quitting never waits
    for a call that is still blocked on the network.
    """

    def __init__(self, name: str) -> None:
        self._jobs: queue.SimpleQueue[tuple[Future[Any], Callable[[], Any]] | None] = (
            queue.SimpleQueue()
        )
        self._thread = threading.Thread(target=self._work, name=name, daemon=True)
        self._thread.start()

    def submit(self, func: Callable[[], _T]) -> Future[_T]:
        future: Future[_T] = Future()
        self._jobs.put((future, func))
        return future

    def stop(self) -> None:
        """Let the thread exit once every job queued so far has run."""
        self._jobs.put(None)

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def _work(self) -> None:
        while True:
            job = self._jobs.get()
            if job is None:
                return
            future, func = job
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = func()
            except BaseException as exc:  # handed to the awaiting coroutine
                future.set_exception(exc)
            else:
                future.set_result(result)


class ImapSession:
    """One authenticated connection to one IMAP server.

    imapclient is blocking, so every call runs on a single dedicated daemon
    thread.  Calls are therefore executed one at a time and in submission
    order, and the socket is only ever touched from that thread.  Message
    numbers are sequence numbers, not UIDs.

    Usage::

        async with imap_session(settings) as session:
            info = await session.select("INBOX")
            raw = await session.fetch(info.message_count - 24, info.message_count)
    """

    def __init__(self, host: str, port: int, *, timeout: float) -> None:
        self._host = host
        self._port = port
        self._timeout = timeout
        self._worker = _SessionWorker(name=f"imap-{host}")
        self._client: IMAPClient | None = None

    # ── Public API ─────────────────────────────────────────────────────────────

    async def connect(self) -> None:
        """Open the TLS connection."""
        try:
            self._client = await self._run(
                IMAPClient,
                self._host,
                port=self._port,
                ssl=True,
                use_uid=False,
                timeout=self._timeout,
            )
        except (IMAPClientError, OSError) as exc:
            raise ImapConnectionError(
                f"Client connection failed: {self._host}:{self._port}: {exc}"
            ) from exc
        logger.info("Connected to %s:%d", self._host, self._port)

    async def login(self, username: str, password: str) -> None:
        client = self._require_client()
        try:
            await self._run(client.login, username, password)
        except LoginError as exc:
            raise ImapAuthError(f"Client login failed: {exc}") from exc
        except (IMAPClientError, OSError) as exc:
            raise ImapConnectionError(f"Client login failed: {exc}") from exc
        logger.info("Logged in as %s", username)

    async def list_mailboxes(self) -> list[str]:
        """Return the names of every mailbox visible to the logged-in user."""
        client = self._require_client()
        try:
            folders = await self._run(client.list_folders)
        except (IMAPClientError, OSError) as exc:
            raise ImapConnectionError(f"Client list failed: {exc}") from exc
        names = [str(name) for _flags, _delimiter, name in folders]
        logger.debug("Server lists %d mailbox(es)", len(names))
        return names

    async def select(self, mailbox: str) -> MailboxInfo:
        """Select ``mailbox`` read-only and return its current message count."""
        client = self._require_client()
        try:
            response = await self._run(client.select_folder, mailbox, readonly=True)
        except (IMAPClientError, OSError) as exc:
            raise ImapSelectError(f"Client select failed: {mailbox}: {exc}") from exc
        count = int(response.get(b"EXISTS", 0))
        logger.debug("Selected %s: %d message(s)", mailbox, count)
        return MailboxInfo(name=mailbox, message_count=count)

    async def fetch(self, start: int, stop: int) -> list[RawMessage]:
        """Fetch full messages ``start`` through ``stop`` (both inclusive).

        Returns records in ascending sequence order; an empty range returns
        an empty list without contacting the server.
        """
        if stop < start:
            return []
        client = self._require_client()
        try:
            response = await self._run(client.fetch, f"{start}:{stop}", [_FETCH_ITEM])
        except (IMAPClientError, OSError) as exc:
            raise ImapFetchError(f"FETCH {start}:{stop} failed: {exc}") from exc
        logger.debug("FETCH %d:%d returned %d record(s)", start, stop, len(response))
        return [
            RawMessage(seq=int(seq), body=data.get(_BODY_KEY))
            for seq, data in sorted(response.items())
        ]

    def close(self) -> None:
        """Queue LOGOUT behind any in-flight call and release the worker thread.

        Does not wait: a call still blocked on the network is abandoned on the
        daemon thread and never holds up process exit.
        """
        if self._client is not None:
            self._worker.submit(functools.partial(self._logout, self._client))
            self._client = None
        self._worker.stop()

    # ── Internal helpers ───────────────────────────────────────────────────────

    def _require_client(self) -> IMAPClient:
        if self._client is None:
            raise ImapConnectionError("session is not connected")
        return self._client

    async def _run(self, func: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
        """Run a blocking imapclient call on the session thread.

        Socket timeouts are re-raised as ImapTimeout so callers can tell a
        stalled server apart from a protocol error.
        """
        future = self._worker.submit(functools.partial(func, *args, **kwargs))
        try:
            return await asyncio.wrap_future(future, loop=asyncio.get_running_loop())
        except TimeoutError as exc:
            name = getattr(func, "__name__", repr(func))
            raise ImapTimeout(
                f"{name} timed out after {self._timeout:g}s on {self._host}"
            ) from exc

    @staticmethod
    def _logout(client: IMAPClient) -> None:
        try:
            client.logout()
        except (IMAPClientError, OSError) as exc:
            logger.debug("Logout failed: %s", exc)


@asynccontextmanager
async def imap_session(settings: ImapSettings) -> AsyncIterator[ImapSession]:
    """Async context manager that yields a connected, logged-in ImapSession.

    Lists the server's mailboxes once so a broken account surfaces before the
    first SELECT.  The session is closed on exit, without waiting for a call
    that is still in flight.

    Example::

        async with imap_session(ImapSettings.from_env()) as session:
            info = await session.select("INBOX")
    """
    session = ImapSession(settings.host, settings.port, timeout=settings.timeout)
    try:
        await session.connect()
        await session.login(settings.username, settings.password)
        await session.list_mailboxes()
        yield session
    finally:
        session.close()
