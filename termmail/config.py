"""IMAP connection settings, read from the environment (and ``.env``)."""

from __future__ import annotations

import os
from dataclasses import dataclass

_DEFAULT_IMAP_PORT = 993
_DEFAULT_MAILBOX = "INBOX"
_DEFAULT_PAGE_SIZE = 25
_DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class ImapSettings:
    """Everything needed to open one mailbox session.

    ``server`` is ``host:port``; the port is optional and defaults to 993
    (IMAP over TLS).
    """

    server: str
    username: str
    password: str
    mailbox: str = _DEFAULT_MAILBOX
    page_size: int = _DEFAULT_PAGE_SIZE
    timeout: float = _DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError(f"page size must be at least 1, got {self.page_size}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

    @property
    def host(self) -> str:
        host, _, _ = self.server.rpartition(":")
        return host if self._has_port() else self.server

    @property
    def port(self) -> int:
        if not self._has_port():
            return _DEFAULT_IMAP_PORT
        return int(self.server.rpartition(":")[2])

    def _has_port(self) -> bool:
        host, sep, port = self.server.rpartition(":")
        return bool(sep and host and port.isdigit())

    @classmethod
    def from_env(cls) -> ImapSettings:
        """Build ImapSettings from environment variables.

        Raises ValueError when a required variable is missing or a numeric
        variable does not parse.
        """
        missing = [
            name
            for name in ("IMAP_SERVER", "IMAP_USERNAME", "IMAP_PASSWORD")
            if not os.environ.get(name)
        ]
        if missing:
            raise ValueError(f"missing required environment variable(s): {', '.join(missing)}")

        try:
            page_size = int(os.environ.get("TERMMAIL_PAGE_SIZE", str(_DEFAULT_PAGE_SIZE)))
            timeout = float(os.environ.get("IMAP_TIMEOUT", str(_DEFAULT_TIMEOUT_SECONDS)))
        except ValueError as exc:
            raise ValueError(f"invalid numeric setting: {exc}") from exc

        return cls(
            server=os.environ["IMAP_SERVER"],
            username=os.environ["IMAP_USERNAME"],
            password=os.environ["IMAP_PASSWORD"],
            mailbox=os.environ.get("IMAP_MAILBOX", _DEFAULT_MAILBOX),
            page_size=page_size,
            timeout=timeout,
        )
