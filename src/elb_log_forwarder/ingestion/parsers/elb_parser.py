"""
ELB access-log line parser.

Turns one raw access-log line into a ParsedRecord in two steps:

1. tokenize(): split on spaces, honoring double quotes and backslash escapes
2. classify_and_map(): detect ALB / NLB / CLB and project the tokens onto
   the format's fixed schema

Classification order:
    tokens[2] starts with "app/"  -> ALB
    tokens[3] starts with "net/"  -> NLB
    anything else                 -> CLB (the only format without a
                                     type/version preamble)

Because CLB is the fallback, non-CLB garbage is classified as CLB first and
then rejected by the field-count check.
"""

import logging
from datetime import datetime, timezone
from typing import Sequence

from ..base import ParsedRecord
from ..exceptions import MalformedRecordError
from .schema import LogFormat, get_schema

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = " "
QUOTE_CHAR = '"'
ESCAPE_CHAR = "\\"

ALB_TYPE_PREFIX = "app/"
NLB_TYPE_PREFIX = "net/"

# Token positions inspected by the classifier
ALB_PREFIX_INDEX = 2
NLB_PREFIX_INDEX = 3


def tokenize(line: str) -> list[str]:
    """
    Split an access-log line into fields.

    Rules:
    - a space separates fields unless quoted or escaped
    - a double quote toggles quoting and is dropped
    - a backslash makes the next character literal and is dropped
    - content after the last separator is a field only if non-empty

    Args:
        line: Raw log line (no trailing newline)

    Returns:
        Ordered list of field strings
    """
    fields = []
    current: list[str] = []
    quoted = False
    escaped = False

    for char in line:
        if escaped:
            current.append(char)
            escaped = False
        elif char == ESCAPE_CHAR:
            escaped = True
        elif char == QUOTE_CHAR:
            quoted = not quoted
        elif char == FIELD_SEPARATOR and not quoted:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)

    if current:
        fields.append("".join(current))

    return fields


def classify(tokens: Sequence[str]) -> LogFormat:
    """
    Decide which access-log format a tokenized line belongs to.

    Args:
        tokens: Output of tokenize()

    Returns:
        Detected LogFormat

    Raises:
        MalformedRecordError: If a token needed for classification is absent
    """
    try:
        if tokens[ALB_PREFIX_INDEX].startswith(ALB_TYPE_PREFIX):
            return LogFormat.ALB
        if tokens[NLB_PREFIX_INDEX].startswith(NLB_TYPE_PREFIX):
            return LogFormat.NLB
    except IndexError:
        raise MalformedRecordError(
            f"Line has {len(tokens)} fields, too few to classify"
        ) from None
    return LogFormat.CLB


def classify_and_map(tokens: Sequence[str], raw: str) -> ParsedRecord:
    """
    Classify tokens and map them onto the detected format's schema.

    Args:
        tokens: Output of tokenize()
        raw: The original line, kept on the record

    Returns:
        ParsedRecord with fields in schema order

    Raises:
        MalformedRecordError: If the field count does not match the schema
            or the timestamp cannot be parsed
    """
    log_format = classify(tokens)
    schema = get_schema(log_format)

    if len(tokens) != schema.field_count:
        raise MalformedRecordError(
            f"{log_format.name} line has {len(tokens)} fields, "
            f"expected {schema.field_count}"
        )

    timestamp_str = tokens[schema.timestamp_index]
    try:
        timestamp = parse_timestamp(timestamp_str)
    except ValueError as e:
        raise MalformedRecordError(
            f"Invalid {log_format.name} timestamp {timestamp_str!r}: {e}"
        ) from e

    return ParsedRecord(
        timestamp=timestamp,
        log_format=log_format,
        fields=dict(zip(schema.fields, tokens)),
        raw=raw,
    )


def parse_line(line: str) -> ParsedRecord:
    """
    Parse one access-log line.

    Args:
        line: Raw log line

    Returns:
        ParsedRecord

    Raises:
        MalformedRecordError: If the line does not fit any schema
    """
    return classify_and_map(tokenize(line), line)


def parse_timestamp(timestamp_str: str) -> datetime:
    """
    Parse an ISO 8601 timestamp from an access log.

    Args:
        timestamp_str: Timestamp string (e.g., "2018-07-02T22:23:00.186641Z")

    Returns:
        Timezone-aware datetime in UTC; naive values are taken as UTC

    Raises:
        ValueError: If timestamp cannot be parsed
    """
    # Handle 'Z' suffix (UTC)
    if timestamp_str.endswith("Z"):
        timestamp_str = timestamp_str[:-1] + "+00:00"

    try:
        dt = datetime.fromisoformat(timestamp_str)
    except ValueError:
        # Fallback for edge cases
        from dateutil import parser

        dt = parser.isoparse(timestamp_str)

    # Convert to UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return dt
