"""Message decoder — turns a raw FETCH record into a Message."""

import logging
from datetime import datetime
from email import policy
from email.headerregistry import Address
from email.message import EmailMessage
from email.parser import BytesParser

from termmail.imap.types import RawMessage
from termmail.parsing.types import Message

logger = logging.getLogger(__name__)

_PARSER = BytesParser(policy=policy.default)


class DecodeError(Exception):
    """Raised when a fetched record cannot be decoded into a Message."""


def decode_message(raw: RawMessage) -> Message:
    """Decode one FETCH record.

    Raises DecodeError when the record has no body section, when the Date or
    From header is missing or unparseable, or when a text part cannot be
    decoded.  Attachments and non-text inline parts never cause a failure.
    """
    if raw.body is None:
        raise DecodeError(f"message {raw.seq}: message without body section")

    msg = _PARSER.parsebytes(raw.body)

    date = _parse_date(raw.seq, msg)
    sender = _parse_addresses(raw.seq, msg, "From")
    if not sender:
        raise DecodeError(f"message {raw.seq}: failed to parse From header field")
    recipients = _parse_addresses(raw.seq, msg, "To")
    subject = str(msg.get("Subject", ""))

    bodies: dict[str, str] = {}
    attachments: dict[str, bytes] = {}
    for part in msg.walk():
        if part.is_multipart():
            continue
        filename = part.get_filename()
        if part.is_attachment() or filename:
            payload = part.get_payload(decode=True)
            attachments[filename or "unnamed"] = payload if isinstance(payload, bytes) else b""
            continue
        if part.get_content_maintype() != "text":
            logger.debug("message %d: skipping inline %s part", raw.seq, part.get_content_type())
            continue
        try:
            bodies[part.get_content_type()] = part.get_content()
        except (LookupError, UnicodeError, ValueError) as exc:
            raise DecodeError(
                f"message {raw.seq}: failed to read message part: {exc}"
            ) from exc

    return Message(
        identity=raw.seq,
        sender=sender,
        recipients=recipients,
        date=date,
        subject=subject,
        bodies=bodies,
        attachments=attachments,
    )


def _parse_date(seq: int, msg: EmailMessage) -> datetime:
    try:
        header = msg["Date"]
        value = header.datetime if header is not None else None
    except (TypeError, ValueError, AttributeError) as exc:
        raise DecodeError(f"message {seq}: failed to parse Date header field: {exc}") from exc
    if value is None:
        raise DecodeError(f"message {seq}: failed to parse Date header field")
    return value


def _parse_addresses(seq: int, msg: EmailMessage, name: str) -> tuple[Address, ...]:
    try:
        header = msg[name]
        if header is None:
            return ()
        return tuple(header.addresses)
    except (TypeError, ValueError, AttributeError) as exc:
        raise DecodeError(f"message {seq}: failed to parse {name} header field: {exc}") from exc
