"""
ELB access-log parsers.

Usage:
    from elb_log_forwarder.ingestion.parsers import parse_line, tokenize

    record = parse_line(line)
    print(record.log_format, record.fields["elb"])
"""

from .elb_parser import (
    classify,
    classify_and_map,
    parse_line,
    parse_timestamp,
    tokenize,
)
from .schema import (
    ALB_FIELDS,
    CLB_FIELDS,
    NLB_FIELDS,
    SCHEMAS,
    FormatSchema,
    LogFormat,
    get_schema,
)

__all__ = [
    # Schema
    "LogFormat",
    "FormatSchema",
    "ALB_FIELDS",
    "NLB_FIELDS",
    "CLB_FIELDS",
    "SCHEMAS",
    "get_schema",
    # Parser
    "tokenize",
    "classify",
    "classify_and_map",
    "parse_line",
    "parse_timestamp",
]
