"""
Ingestion layer: ELB access-log parsing and event decoding.

Usage:
    from elb_log_forwarder.ingestion import LogReader, decode_event

    for item in decode_event(lambda_event):
        ...

    for record in LogReader(body, key):
        print(record.log_format, record.fields["elb"])
"""

from .base import LogFormat, ParsedRecord
from .exceptions import (
    IngestionError,
    InvalidObjectKeyError,
    MalformedEnvelopeError,
    MalformedRecordError,
    ObjectFetchError,
)
from .file_utils import open_stream_auto_decompress
from .notifications import (
    NotificationItem,
    QueueEnvelope,
    StorageNotification,
    decode_event,
    decode_item,
    parse_envelope_body,
)
from .parsers import classify_and_map, parse_line, tokenize
from .reader import LogReader, ParseErrorPolicy, read_records

__all__ = [
    # Data models
    "LogFormat",
    "ParsedRecord",
    # Parsing
    "tokenize",
    "classify_and_map",
    "parse_line",
    "LogReader",
    "ParseErrorPolicy",
    "read_records",
    # Event decoding
    "NotificationItem",
    "StorageNotification",
    "QueueEnvelope",
    "decode_event",
    "decode_item",
    "parse_envelope_body",
    # Exceptions
    "IngestionError",
    "MalformedRecordError",
    "MalformedEnvelopeError",
    "ObjectFetchError",
    "InvalidObjectKeyError",
    # File utilities
    "open_stream_auto_decompress",
]
