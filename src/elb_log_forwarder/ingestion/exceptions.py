"""
Custom exceptions for the ingestion module.

Provides specialized exception classes for handling error conditions
while decoding notifications, fetching log objects and parsing lines.
"""


class IngestionError(Exception):
    """
    Base exception for all ingestion-related errors.

    All other ingestion exceptions inherit from this class,
    allowing for broad exception catching when needed.
    """

    pass


class MalformedRecordError(IngestionError):
    """
    Raised when a log line cannot be mapped onto its format's schema.

    Covers missing positional tokens, field-count mismatches and
    unparseable timestamps.

    Attributes:
        line_number: The line number where parsing failed (optional)
        line_content: The content of the problematic line (optional)
        message: Detailed error message
    """

    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        line_content: str | None = None,
    ):
        self.line_number = line_number
        self.line_content = line_content
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with line context."""
        if self.line_number is not None and self.line_content:
            # Truncate long lines for readability
            content = (
                self.line_content[:100] + "..."
                if len(self.line_content) > 100
                else self.line_content
            )
            return f"{self.message} (line {self.line_number}: {content!r})"
        elif self.line_number is not None:
            return f"{self.message} (line {self.line_number})"
        return self.message


class MalformedEnvelopeError(IngestionError):
    """
    Raised when a queue message body carries no S3 notification records.

    Malformed envelopes are skipped, never reported as batch failures.

    Attributes:
        message_id: The queue message identifier (optional)
        reason: Why the body was rejected
    """

    def __init__(self, message_id: str | None, reason: str):
        self.message_id = message_id
        self.reason = reason
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.message_id:
            return f"Malformed envelope {self.message_id}: {self.reason}"
        return f"Malformed envelope: {self.reason}"


class ObjectFetchError(IngestionError):
    """
    Raised when a log object cannot be read from storage.

    Attributes:
        bucket: Bucket name
        key: Object key
    """

    def __init__(self, bucket: str, key: str, reason: str):
        self.bucket = bucket
        self.key = key
        self.reason = reason
        super().__init__(f"Cannot fetch s3://{bucket}/{key}: {reason}")


class InvalidObjectKeyError(IngestionError):
    """
    Raised when an object key does not follow the ELB access-log naming
    convention and no stream name can be derived from it.
    """

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Cannot derive stream name from key {key!r}: {reason}")
