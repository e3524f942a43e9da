"""Log parsing: byte decoding, timestamps, and event extraction."""

from amanuensis.parser.decoder import LogLines, decode_log_bytes, has_legacy_sentinel, iter_lines
from amanuensis.parser.events import *  # noqa: F403
from amanuensis.parser.events import __all__ as _events_all
from amanuensis.parser.extractor import EventExtractor, strip_article, strip_sentinel
from amanuensis.parser.timestamp import format_timestamp, parse_timestamp

__all__ = [
    "LogLines",
    "decode_log_bytes",
    "has_legacy_sentinel",
    "iter_lines",
    "EventExtractor",
    "strip_article",
    "strip_sentinel",
    "format_timestamp",
    "parse_timestamp",
    *_events_all,
]
