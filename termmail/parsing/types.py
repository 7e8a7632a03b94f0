"""Types for decoded messages."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from email.headerregistry import Address
from types import MappingProxyType

_NO_TEXT_BODY = "(no text body)"


def format_addresses(addresses: tuple[Address, ...]) -> str:
    """Render an address list the way it appears in a header, or "" if empty."""
    return ", ".join(str(a) for a in addresses)


@dataclass(frozen=True)
class Message:
    """One decoded mail item.

    ``identity`` is the IMAP sequence number the message had when it was
    fetched.  It is unique within the selected mailbox at that moment but is
    not stable across expunges.

    Produced by decode_message() and owned by MailboxStore for the rest of the
    session.  ``bodies`` and ``attachments`` are read-only views over copies of
    the mappings passed in.
    """

    identity: int
    sender: tuple[Address, ...]
    recipients: tuple[Address, ...]
    date: datetime
    subject: str
    bodies: Mapping[str, str] = field(default_factory=dict)       # content type → text
    attachments: Mapping[str, bytes] = field(default_factory=dict)  # filename → payload

    def __post_init__(self) -> None:
        object.__setattr__(self, "bodies", MappingProxyType(dict(self.bodies)))
        object.__setattr__(self, "attachments", MappingProxyType(dict(self.attachments)))

    def list_line(self) -> str:
        """One-line summary shown in the message list."""
        sender = self.sender[0].addr_spec if self.sender else ""
        return f"{self.identity}. [{sender}] {self.subject} ({self.date})"

    def text_body(self) -> str:
        """Plain-text body, falling back to the HTML body, then to a placeholder."""
        for content_type in ("text/plain", "text/html"):
            body = self.bodies.get(content_type)
            if body:
                return body
        return _NO_TEXT_BODY

    def preview_text(self) -> str:
        """Full text for the preview pane: headers, body, attachment list."""
        lines = [
            f"From: {format_addresses(self.sender)}",
            f"To: {format_addresses(self.recipients)}",
            f"Date: {self.date}",
            f"Subject: {self.subject}",
            "",
            self.text_body(),
        ]
        if self.attachments:
            lines.append("")
            lines.append("Attachments:")
            lines.extend(
                f"  {name} ({len(payload)} bytes)"
                for name, payload in self.attachments.items()
            )
        return "\n".join(lines)
