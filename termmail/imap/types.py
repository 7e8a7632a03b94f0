"""Data types shared across the IMAP session modules."""

from dataclasses import dataclass


@dataclass(frozen=True)
class MailboxInfo:
    """Result of selecting a mailbox."""

    name: str
    message_count: int


@dataclass(frozen=True)
class RawMessage:
    """One FETCH response record, before decoding.

    ``body`` holds the full RFC 822 literal from ``BODY[]``; it is None when the
    server answered without a body section.
    """

    seq: int
    body: bytes | None
