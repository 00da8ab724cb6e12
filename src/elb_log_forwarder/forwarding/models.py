"""
Data models exchanged between forwarders and log stream backends.
"""

from dataclasses import dataclass
from typing import Optional

from ..ingestion.base import ParsedRecord


@dataclass(frozen=True)
class OutputEvent:
    """
    One event as sent to the backend.

    Attributes:
        timestamp_ms: Event time in milliseconds since the Unix epoch
        message: Event body
    """

    timestamp_ms: int
    message: str

    @property
    def size(self) -> int:
        """Message size in bytes (UTF-8), excluding per-event overhead."""
        return len(self.message.encode("utf-8"))

    def to_dict(self) -> dict:
        """Convert to a PutLogEvents logEvents entry."""
        return {"timestamp": self.timestamp_ms, "message": self.message}

    @classmethod
    def from_record(cls, record: ParsedRecord, message_format: str = "plain") -> "OutputEvent":
        """
        Derive an event from a parsed record.

        Args:
            record: Parsed access-log record
            message_format: "plain" for the raw line, "json" for the fields

        Returns:
            OutputEvent
        """
        if message_format == "json":
            message = record.to_json()
        else:
            message = record.raw
        return cls(timestamp_ms=record.timestamp_ms, message=message)


@dataclass(frozen=True)
class StreamDescription:
    """
    A log stream as reported by the backend.

    Attributes:
        name: Stream name
        upload_sequence_token: Token required for the next append, if any
    """

    name: str
    upload_sequence_token: Optional[str] = None


@dataclass(frozen=True)
class AppendResult:
    """
    Outcome of one append call.

    Attributes:
        next_token: Token required for the next append, if any
        rejected_count: Events the backend refused (too old, too new, expired)
    """

    next_token: Optional[str] = None
    rejected_count: int = 0
