"""Shared pytest fixtures: an in-memory mailbox and a recording view."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from email.message import EmailMessage
from email.utils import format_datetime

import pytest

from termmail.config import ImapSettings
from termmail.imap.types import MailboxInfo, RawMessage
from termmail.sync.types import ListEntry

_BASE_DATE = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def build_message_bytes(
    seq: int,
    *,
    subject: str | None = None,
    sender: str = "Alice <alice@example.com>",
    to: str = "bob@example.com",
    body: str = "Plain text body.",
    html: str | None = None,
    attachments: tuple[tuple[str, bytes], ...] = (),
) -> bytes:
    """RFC 822 bytes for a message that arrived ``seq`` minutes after the base date."""
    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = to
    msg["Subject"] = subject if subject is not None else f"Message {seq}"
    msg["Date"] = format_datetime(_BASE_DATE + timedelta(minutes=seq))
    msg.set_content(body)
    if html is not None:
        msg.add_alternative(html, subtype="html")
    for filename, payload in attachments:
        msg.add_attachment(
            payload, maintype="application", subtype="octet-stream", filename=filename
        )
    return msg.as_bytes()


class FakeMailbox:
    """Stands in for ImapSession: messages are numbered 1..N, oldest first."""

    def __init__(self, size: int = 0) -> None:
        self.bodies: list[bytes | None] = [build_message_bytes(i) for i in range(1, size + 1)]
        self.fetch_calls: list[tuple[int, int]] = []
        self.select_calls = 0
        self.closed = False

    def deliver(self, count: int = 1) -> None:
        start = len(self.bodies) + 1
        self.bodies.extend(build_message_bytes(i) for i in range(start, start + count))

    async def select(self, mailbox: str) -> MailboxInfo:
        self.select_calls += 1
        return MailboxInfo(name=mailbox, message_count=len(self.bodies))

    async def fetch(self, start: int, stop: int) -> list[RawMessage]:
        self.fetch_calls.append((start, stop))
        last = min(stop, len(self.bodies))
        return [RawMessage(seq=seq, body=self.bodies[seq - 1]) for seq in range(start, last + 1)]

    def close(self) -> None:
        self.closed = True


class RecordingView:
    """MailboxView that records every instruction and mirrors the list rows."""

    def __init__(self) -> None:
        self.instructions: list[tuple[str, int]] = []
        self.rows: list[int] = []
        self.exhausted_calls = 0

    async def insert_at_start(self, entry: ListEntry) -> None:
        self.instructions.append(("start", entry.identity))
        self.rows.insert(0, entry.identity)

    async def insert_at_end(self, entry: ListEntry) -> None:
        self.instructions.append(("end", entry.identity))
        self.rows.append(entry.identity)

    async def mark_exhausted(self) -> None:
        self.exhausted_calls += 1


@pytest.fixture
def settings() -> ImapSettings:
    return ImapSettings(
        server="imap.example.com:993",
        username="me@example.com",
        password="secret",
        page_size=25,
    )


@pytest.fixture
def make_mailbox() -> Callable[[int], FakeMailbox]:
    """Factory for FakeMailbox instances of a given size."""
    return FakeMailbox


@pytest.fixture
def view() -> RecordingView:
    return RecordingView()


@pytest.fixture
def message_bytes() -> Callable[..., bytes]:
    """Factory for RFC 822 message bytes (see build_message_bytes)."""
    return build_message_bytes
