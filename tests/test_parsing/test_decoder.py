"""Tests for decode_message() and the Message rendering helpers."""

from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from termmail.imap.types import RawMessage
from termmail.parsing.decoder import DecodeError, decode_message


def _raw(seq: int, body: bytes | None) -> RawMessage:
    return RawMessage(seq=seq, body=body)


# ── Envelope fields ────────────────────────────────────────────────────────────


class TestEnvelope:
    def test_basic_fields(self, message_bytes: Callable[..., bytes]) -> None:
        msg = decode_message(_raw(7, message_bytes(7, subject="Budget review")))

        assert msg.identity == 7
        assert msg.subject == "Budget review"
        assert msg.sender[0].addr_spec == "alice@example.com"
        assert msg.sender[0].display_name == "Alice"
        assert [a.addr_spec for a in msg.recipients] == ["bob@example.com"]
        assert msg.date == datetime(2026, 3, 1, 9, 7, tzinfo=timezone.utc)

    def test_multiple_recipients(self, message_bytes: Callable[..., bytes]) -> None:
        raw = message_bytes(1, to="bob@example.com, Carol <carol@example.com>")
        msg = decode_message(_raw(1, raw))
        assert [a.addr_spec for a in msg.recipients] == ["bob@example.com", "carol@example.com"]

    def test_missing_to_gives_empty_recipients(self) -> None:
        raw = (
            b"From: alice@example.com\r\n"
            b"Date: Sun, 01 Mar 2026 09:00:00 +0000\r\n"
            b"Subject: No recipients\r\n"
            b"\r\n"
            b"hello\r\n"
        )
        msg = decode_message(_raw(1, raw))
        assert msg.recipients == ()

    def test_missing_subject_is_empty_string(self) -> None:
        raw = (
            b"From: alice@example.com\r\n"
            b"Date: Sun, 01 Mar 2026 09:00:00 +0000\r\n"
            b"\r\n"
            b"hello\r\n"
        )
        assert decode_message(_raw(1, raw)).subject == ""

    def test_encoded_subject_is_decoded(self) -> None:
        raw = (
            b"From: alice@example.com\r\n"
            b"Date: Sun, 01 Mar 2026 09:00:00 +0000\r\n"
            b"Subject: =?utf-8?q?Caf=C3=A9?=\r\n"
            b"\r\n"
            b"hello\r\n"
        )
        assert decode_message(_raw(1, raw)).subject == "Café"


# ── Body parts and attachments ─────────────────────────────────────────────────


class TestContent:
    def test_plain_body(self, message_bytes: Callable[..., bytes]) -> None:
        msg = decode_message(_raw(1, message_bytes(1, body="Hi Bob")))
        assert msg.bodies["text/plain"].strip() == "Hi Bob"
        assert msg.attachments == {}

    def test_plain_and_html_alternatives(self, message_bytes: Callable[..., bytes]) -> None:
        raw = message_bytes(1, body="plain", html="<p>html</p>")
        msg = decode_message(_raw(1, raw))
        assert set(msg.bodies) == {"text/plain", "text/html"}
        assert "<p>html</p>" in msg.bodies["text/html"]

    def test_attachments_by_filename(self, message_bytes: Callable[..., bytes]) -> None:
        raw = message_bytes(
            1, attachments=(("report.pdf", b"%PDF-1.7"), ("data.bin", b"\x00\x01"))
        )
        msg = decode_message(_raw(1, raw))
        assert msg.attachments == {"report.pdf": b"%PDF-1.7", "data.bin": b"\x00\x01"}
        assert "text/plain" in msg.bodies

    def test_duplicate_attachment_names_overwrite(
        self, message_bytes: Callable[..., bytes]
    ) -> None:
        raw = message_bytes(1, attachments=(("a.txt", b"first"), ("a.txt", b"second")))
        msg = decode_message(_raw(1, raw))
        assert msg.attachments == {"a.txt": b"second"}


# ── Failures ───────────────────────────────────────────────────────────────────


class TestDecodeErrors:
    def test_missing_body_section(self) -> None:
        with pytest.raises(DecodeError, match="without body section"):
            decode_message(_raw(3, None))

    def test_missing_date(self) -> None:
        raw = b"From: alice@example.com\r\nSubject: x\r\n\r\nbody\r\n"
        with pytest.raises(DecodeError, match="Date"):
            decode_message(_raw(1, raw))

    def test_unparseable_date(self) -> None:
        raw = b"From: alice@example.com\r\nDate: not a date\r\nSubject: x\r\n\r\nbody\r\n"
        with pytest.raises(DecodeError, match="Date"):
            decode_message(_raw(1, raw))

    def test_missing_from(self) -> None:
        raw = b"Date: Sun, 01 Mar 2026 09:00:00 +0000\r\nSubject: x\r\n\r\nbody\r\n"
        with pytest.raises(DecodeError, match="From"):
            decode_message(_raw(1, raw))

    def test_error_names_the_sequence_number(self) -> None:
        with pytest.raises(DecodeError, match="message 42"):
            decode_message(_raw(42, None))

    def test_bytes_that_are_not_a_message_fail_on_headers(self) -> None:
        with pytest.raises(DecodeError, match="message 7: failed to parse Date"):
            decode_message(_raw(7, b"\x00\xff not a mail message"))
