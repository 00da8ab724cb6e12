"""
Data models for parsed ELB access-log records.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType
from typing import Mapping

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class LogFormat(Enum):
    """Load balancer access-log formats."""

    ALB = "alb"
    NLB = "nlb"
    CLB = "clb"


@dataclass(frozen=True)
class ParsedRecord:
    """
    One access-log line mapped onto its format's schema.

    Attributes:
        timestamp: Event time (UTC, timezone-aware)
        log_format: Detected load balancer format
        fields: Read-only field name -> raw string value, in schema order
        raw: The original line
    """

    timestamp: datetime
    log_format: LogFormat
    fields: Mapping[str, str] = field(hash=False)
    raw: str

    def __post_init__(self):
        # Copy so the caller's dict cannot alter the record later
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @property
    def timestamp_ms(self) -> int:
        """Event time as integer milliseconds since the Unix epoch."""
        return (self.timestamp - EPOCH) // timedelta(milliseconds=1)

    def to_json(self) -> str:
        """Serialize the field mapping as compact JSON, keys in schema order."""
        return json.dumps(dict(self.fields), ensure_ascii=False, separators=(",", ":"))
