"""Tests for log byte decoding."""

from __future__ import annotations

import pytest

from amanuensis.core.exceptions import DecodeError
from amanuensis.parser.decoder import decode_log_bytes, has_legacy_sentinel, iter_lines


class TestLegacySentinel:
    """Tests for Windows-1252 detection."""

    def test_lone_yen_byte(self) -> None:
        """Test a bare 0xA5 byte marks a legacy file."""
        assert has_legacy_sentinel(b"1/1/24 1:00:00a \xa5You feel tougher.\r")

    def test_utf8_yen(self) -> None:
        """Test the UTF-8 encoding of the yen sign is not a legacy marker."""
        assert not has_legacy_sentinel("¥You feel tougher.".encode())

    def test_other_utf8_sequences(self) -> None:
        """Test multi-byte sequences are skipped whole."""
        assert not has_legacy_sentinel("• Café ‘quoted’ 😀".encode())

    def test_plain_ascii(self) -> None:
        """Test ASCII never needs the legacy codec."""
        assert not has_legacy_sentinel(b"You slaughtered a Rat.")


class TestDecodeLogBytes:
    """Tests for whole-buffer decoding."""

    def test_legacy_buffer(self) -> None:
        """Test a legacy buffer decodes the sentinel as a yen sign."""
        assert decode_log_bytes(b"\xa5You feel tougher.") == "¥You feel tougher."

    def test_utf8_buffer(self) -> None:
        """Test a UTF-8 buffer keeps its characters."""
        text = "• You seem to heal more effectively."
        assert decode_log_bytes(text.encode()) == text

    def test_corrupt_bytes_replaced(self) -> None:
        """Test undecodable bytes become U+FFFD instead of failing."""
        assert decode_log_bytes(b"ok\xff then") == "ok� then"

    def test_accepts_bytearray(self) -> None:
        """Test any bytes-like buffer is accepted."""
        assert decode_log_bytes(bytearray(b"abc")) == "abc"

    def test_rejects_text(self) -> None:
        """Test a str input is a decode error."""
        with pytest.raises(DecodeError):
            decode_log_bytes("already text")  # type: ignore[arg-type]


class TestIterLines:
    """Tests for the lazy line sequence."""

    def test_mixed_line_endings(self) -> None:
        """Test LF, CRLF and classic Mac CR endings all split lines."""
        lines = iter_lines(b"one\r\ntwo\rthree\nfour")

        assert list(lines) == ["one", "two", "three", "four"]

    def test_restartable(self) -> None:
        """Test every iteration starts from the first line."""
        lines = iter_lines(b"first\nsecond\n")

        assert next(iter(lines)) == "first"
        assert list(lines) == ["first", "second"]
        assert list(lines) == ["first", "second"]

    def test_empty_buffer(self) -> None:
        """Test an empty file has no lines."""
        assert list(iter_lines(b"")) == []
