"""
Decoding of incoming Lambda events into notification items.

A Lambda batch holds top-level records of two shapes:

- S3 event records, delivered directly by the bucket notification
- SQS records whose body is a JSON S3 event ({"Records": [...]})

Both are decoded once, at the boundary, into a tagged union:
StorageNotification for a direct S3 record, QueueEnvelope for an SQS record.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union
from urllib.parse import unquote_plus

from .exceptions import MalformedEnvelopeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageNotification:
    """
    One S3 object-created notification.

    Attributes:
        bucket: Bucket name
        key: Object key (URL-decoded)
    """

    bucket: str
    key: str

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"

    @classmethod
    def from_event_record(cls, record: dict[str, Any]) -> "StorageNotification":
        """
        Build from an S3 event record.

        S3 URL-encodes object keys in notifications ("+" for space).

        Raises:
            KeyError: If bucket name or object key is missing
        """
        s3 = record["s3"]
        return cls(
            bucket=s3["bucket"]["name"],
            key=unquote_plus(s3["object"]["key"]),
        )


@dataclass(frozen=True)
class QueueEnvelope:
    """
    One SQS message carrying S3 notifications in its body.

    Attributes:
        message_id: SQS message id, reported back on failure
        notifications: Embedded S3 notifications; None if the body
            was malformed
        error: Why the body was rejected (when notifications is None)
    """

    message_id: str
    notifications: Optional[tuple[StorageNotification, ...]] = None
    error: Optional[MalformedEnvelopeError] = field(default=None, compare=False)

    @property
    def is_malformed(self) -> bool:
        return self.notifications is None


NotificationItem = Union[StorageNotification, QueueEnvelope]


def parse_envelope_body(message_id: str, body: str) -> tuple[StorageNotification, ...]:
    """
    Extract S3 notifications from an SQS message body.

    Records without an "s3" section (e.g. the s3:TestEvent) are skipped.

    Args:
        message_id: SQS message id, for error context
        body: Raw message body

    Returns:
        Tuple of StorageNotification (may be empty)

    Raises:
        MalformedEnvelopeError: If the body is not JSON or has no Records list
    """
    try:
        payload = json.loads(body)
    except (TypeError, json.JSONDecodeError) as e:
        raise MalformedEnvelopeError(message_id, f"body is not JSON: {e}") from e

    if not isinstance(payload, dict) or not isinstance(payload.get("Records"), list):
        raise MalformedEnvelopeError(message_id, "no S3 event Records in body")

    notifications = []
    for record in payload["Records"]:
        if not isinstance(record, dict) or "s3" not in record:
            logger.debug(f"Ignoring non-S3 record in message {message_id}")
            continue
        try:
            notifications.append(StorageNotification.from_event_record(record))
        except (KeyError, TypeError) as e:
            raise MalformedEnvelopeError(
                message_id, f"S3 record missing bucket or key: {e}"
            ) from e

    return tuple(notifications)


def decode_item(record: dict[str, Any]) -> Optional[NotificationItem]:
    """
    Decode one top-level Lambda event record.

    Args:
        record: A member of event["Records"]

    Returns:
        StorageNotification, QueueEnvelope, or None for unrecognized shapes
    """
    if "s3" in record:
        try:
            return StorageNotification.from_event_record(record)
        except (KeyError, TypeError) as e:
            logger.error(f"Ignoring S3 record missing bucket or key: {e}")
            return None

    if "receiptHandle" in record or record.get("eventSource") == "aws:sqs":
        message_id = record.get("messageId", "")
        try:
            notifications = parse_envelope_body(message_id, record.get("body"))
        except MalformedEnvelopeError as e:
            return QueueEnvelope(message_id=message_id, error=e)
        return QueueEnvelope(message_id=message_id, notifications=notifications)

    logger.warning(f"Ignoring unrecognized event record: {sorted(record)}")
    return None


def decode_event(event: dict[str, Any]) -> list[NotificationItem]:
    """
    Decode a Lambda event into notification items.

    Args:
        event: Lambda event ({"Records": [...]})

    Returns:
        Decoded items, in event order
    """
    items = []
    for record in event.get("Records") or []:
        item = decode_item(record)
        if item is not None:
            items.append(item)
    return items
