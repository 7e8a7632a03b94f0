"""Types exchanged between the sync controller, the store and the UI."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from termmail.parsing.types import Message


class Command(Enum):
    """Requests the UI hands to the sync controller's command loop."""

    LOAD_MORE = "load_more"
    REFRESH = "refresh"
    QUIT = "quit"


class Position(Enum):
    """Which end of the presentation order an insert goes to."""

    PREPEND = "prepend"  # visual start, newest
    APPEND = "append"    # visual end, oldest


@dataclass(frozen=True)
class FetchRange:
    """Sequence numbers ``start`` through ``stop``, both inclusive."""

    start: int
    stop: int

    @classmethod
    def clamped(cls, start: int, stop: int) -> FetchRange:
        return cls(start=max(start, 1), stop=stop)

    @property
    def empty(self) -> bool:
        return self.stop < self.start

    @property
    def reaches_first(self) -> bool:
        """True when the range covers down to sequence number 1."""
        return self.start == 1

    def __len__(self) -> int:
        return 0 if self.empty else self.stop - self.start + 1

    def __str__(self) -> str:
        return f"{self.start}:{self.stop}"


@dataclass(frozen=True)
class ListEntry:
    """Display fields for one row of the message list."""

    identity: int
    line: str

    @classmethod
    def from_message(cls, message: Message) -> ListEntry:
        return cls(identity=message.identity, line=message.list_line())
