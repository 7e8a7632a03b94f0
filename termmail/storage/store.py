"""In-memory mailbox store — the ordered, deduplicated set of loaded messages."""

import logging
from collections import deque
from collections.abc import Iterator

from termmail.parsing.types import Message
from termmail.sync.types import Position

logger = logging.getLogger(__name__)


class MailboxStore:
    """Holds every decoded message of the session in presentation order.

    Messages are added at the newest end (PREPEND) or the oldest end (APPEND);
    entries already placed never move.  An identity is held at most once:
    inserting a message whose identity is already present is a silent no-op.

    ``known_mailbox_size`` is the mailbox message count observed at the last
    successful SELECT.  Only the sync controller sets it, and only after a
    selection; fetches never touch it.

    Designed for single-threaded use from the controller's command loop; the
    UI never reads the store directly except through ``at()`` on selection.

    Usage::

        store = MailboxStore()
        store.set_known_mailbox_size(40)
        store.insert(message, Position.APPEND)
        newest = store.at(0)
    """

    def __init__(self) -> None:
        self._order: deque[Message] = deque()
        self._by_identity: dict[int, Message] = {}
        self._known_mailbox_size = 0

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[Message]:
        return iter(self._order)

    def contains(self, identity: int) -> bool:
        return identity in self._by_identity

    def count(self) -> int:
        return len(self._order)

    def insert(self, message: Message, position: Position) -> bool:
        """Add ``message`` at ``position``.

        Returns False, leaving the store unchanged, when a message with the
        same identity is already held.
        """
        if self.contains(message.identity):
            logger.debug("Skipping message %d: already loaded", message.identity)
            return False
        if position is Position.PREPEND:
            self._order.appendleft(message)
        else:
            self._order.append(message)
        self._by_identity[message.identity] = message
        return True

    def at(self, index: int) -> Message:
        """Return the message at presentation ``index`` (0 is the top row)."""
        if not 0 <= index < len(self._order):
            raise IndexError(f"no message at index {index} ({len(self._order)} loaded)")
        return self._order[index]

    def identities(self) -> list[int]:
        """Identities in presentation order."""
        return [m.identity for m in self._order]

    def known_mailbox_size(self) -> int:
        return self._known_mailbox_size

    def set_known_mailbox_size(self, size: int) -> None:
        self._known_mailbox_size = size
