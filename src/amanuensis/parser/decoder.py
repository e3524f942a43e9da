"""Byte-to-line decoding for client log files.

The Mac client writes Windows-1252 text where byte 0xA5 is the "¥" sentinel
in front of system and trainer messages. Newer files are UTF-8. A buffer is
decoded as Windows-1252 when it contains a 0xA5 byte that is not part of a
UTF-8 sequence, and as UTF-8 otherwise. Undecodable bytes become U+FFFD in
both cases, so a few corrupt bytes never cost the rest of the file.
"""

from __future__ import annotations

import io
from typing import Iterator

from amanuensis.core.constants import YEN_BYTE
from amanuensis.core.exceptions import DecodeError


def has_legacy_sentinel(data: bytes) -> bool:
    """Check for a 0xA5 byte outside any UTF-8 multi-byte sequence.

    Args:
        data: Raw file bytes.

    Returns:
        True when the buffer must be decoded as Windows-1252.
    """
    i = 0
    size = len(data)
    while i < size:
        byte = data[i]
        if byte < 0x80:
            i += 1
        elif byte == YEN_BYTE:
            if i == 0 or data[i - 1] != 0xC2:
                return True
            i += 1
        elif byte & 0xE0 == 0xC0:
            i += 2
        elif byte & 0xF0 == 0xE0:
            i += 3
        elif byte & 0xF8 == 0xF0:
            i += 4
        else:
            i += 1
    return False


def decode_log_bytes(data: bytes) -> str:
    """Decode a whole log buffer to text.

    Args:
        data: Raw file bytes.

    Returns:
        Decoded text; unmappable bytes are replaced with U+FFFD.

    Raises:
        DecodeError: If ``data`` is not a bytes-like object.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise DecodeError(
            f"Expected bytes, got {type(data).__name__}",
            details={"type": type(data).__name__},
        )
    data = bytes(data)
    encoding = "cp1252" if has_legacy_sentinel(data) else "utf-8"
    return data.decode(encoding, errors="replace")


class LogLines:
    """Lazy, restartable sequence of decoded lines.

    Every iteration starts again from the first line. Line endings may be
    ``\\n``, ``\\r\\n`` or the classic Mac ``\\r``.
    """

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._text: str | None = None

    @property
    def text(self) -> str:
        """The decoded buffer, decoded on first use."""
        if self._text is None:
            self._text = decode_log_bytes(self._data)
        return self._text

    def __iter__(self) -> Iterator[str]:
        for line in io.StringIO(self.text, newline=None):
            yield line.rstrip("\n")


def iter_lines(data: bytes) -> LogLines:
    """Return the decoded lines of a log buffer."""
    return LogLines(data)


__all__ = [
    "has_legacy_sentinel",
    "decode_log_bytes",
    "LogLines",
    "iter_lines",
]
