"""
Ingestion orchestrator.

Fans a Lambda batch of S3 / SQS notifications out into concurrent
per-object tasks. Each task reads one access-log object, pushes every
record into the forwarder for its stream, and flushes that forwarder once
the object is consumed.

Failure isolation:
- a direct S3 notification that fails is logged only (no retry path)
- any failed notification inside an SQS envelope reports the whole
  envelope's messageId in batchItemFailures, so SQS redelivers it
- a malformed envelope body is logged and skipped, not reported
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import IO, Any, Callable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .config.settings import Settings
from .forwarding.backend import LogStreamBackend
from .forwarding.models import OutputEvent
from .forwarding.registry import ForwarderRegistry, stream_name_resolver
from .ingestion.exceptions import ObjectFetchError
from .ingestion.notifications import (
    NotificationItem,
    QueueEnvelope,
    StorageNotification,
    decode_event,
)
from .ingestion.reader import LogReader, ParseErrorPolicy

logger = logging.getLogger(__name__)


class ObjectFetcher(ABC):
    """Source of log object byte streams."""

    @abstractmethod
    async def fetch(self, bucket: str, key: str) -> IO[bytes]:
        """
        Open an object for sequential reading.

        Raises:
            ObjectFetchError: If the object cannot be read
        """
        pass


class S3ObjectFetcher(ObjectFetcher):
    """ObjectFetcher over a boto3 S3 client."""

    def __init__(self, client: Any):
        self.client = client

    async def fetch(self, bucket: str, key: str) -> IO[bytes]:
        try:
            response = await asyncio.to_thread(
                self.client.get_object, Bucket=bucket, Key=key
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            raise ObjectFetchError(bucket, key, f"{code}: {e}") from e
        except BotoCoreError as e:
            raise ObjectFetchError(bucket, key, str(e)) from e
        return response["Body"]


@dataclass
class BatchResult:
    """
    Outcome of processing one Lambda batch.

    events_forwarded counts events the backend accepted; events refused for
    their timestamp (too old, too new, expired) are in events_rejected and do
    not fail the object.
    """

    batch_item_failures: list[str] = field(default_factory=list)
    objects_processed: int = 0
    objects_failed: int = 0
    events_forwarded: int = 0
    events_rejected: int = 0
    skipped_envelopes: int = 0

    def to_response(self) -> dict:
        """Render the SQS partial batch response."""
        return {
            "batchItemFailures": [
                {"itemIdentifier": message_id}
                for message_id in self.batch_item_failures
            ]
        }

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "batch_item_failures": list(self.batch_item_failures),
            "objects_processed": self.objects_processed,
            "objects_failed": self.objects_failed,
            "events_forwarded": self.events_forwarded,
            "events_rejected": self.events_rejected,
            "skipped_envelopes": self.skipped_envelopes,
        }


class IngestionOrchestrator:
    """
    Drives notification -> reader -> forwarder for one Lambda batch.

    Clients are injected so tests can substitute in-memory fakes.

    Example:
        orchestrator = IngestionOrchestrator(
            settings,
            fetcher=S3ObjectFetcher(boto3.client("s3")),
            backend=CloudWatchLogsBackend(boto3.client("logs")),
        )
        result = await orchestrator.process(event)
        return result.to_response()
    """

    def __init__(
        self,
        settings: Settings,
        fetcher: ObjectFetcher,
        backend: LogStreamBackend,
        resolve_stream_name: Optional[Callable[[str], str]] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            settings: Validated settings
            fetcher: Object byte stream source
            backend: Log stream backend
            resolve_stream_name: Key -> stream name override
                (default: derived from settings)
        """
        self.settings = settings
        self.fetcher = fetcher
        self.backend = backend
        self.resolve_stream_name = resolve_stream_name or stream_name_resolver(settings)
        self.parse_error_policy = ParseErrorPolicy(settings.parse_error_policy)

    async def process(self, event: dict[str, Any]) -> BatchResult:
        """
        Process one Lambda event.

        Args:
            event: Lambda event with S3 and/or SQS records

        Returns:
            BatchResult naming the SQS messages to redeliver
        """
        items = decode_event(event)
        registry = ForwarderRegistry(
            self.backend, self.settings.log_group, self.settings.batch_limits
        )
        result = BatchResult()

        logger.info(f"Processing {len(items)} notification items")

        await asyncio.gather(
            *(self._process_item(item, registry, result) for item in items)
        )

        result.events_rejected = registry.events_rejected
        result.events_forwarded = max(0, result.events_forwarded - result.events_rejected)
        if result.events_rejected:
            logger.warning(
                f"{result.events_rejected} events were rejected by the backend "
                f"for their timestamp"
            )

        logger.info(
            f"Processing complete. Objects: {result.objects_processed} ok, "
            f"{result.objects_failed} failed; events forwarded: "
            f"{result.events_forwarded}; streams: {', '.join(registry.names())}; "
            f"failed messages: {len(result.batch_item_failures)}"
        )
        return result

    async def _process_item(
        self,
        item: NotificationItem,
        registry: ForwarderRegistry,
        result: BatchResult,
    ) -> None:
        if isinstance(item, StorageNotification):
            try:
                await self._process_tracked(item, registry, result)
            except Exception as e:
                logger.error(f"Failed to process {item.uri}: {e}", exc_info=True)
            return

        envelope: QueueEnvelope = item
        if envelope.is_malformed:
            logger.warning(f"Skipping message: {envelope.error}")
            result.skipped_envelopes += 1
            return

        outcomes = await asyncio.gather(
            *(
                self._process_tracked(notification, registry, result)
                for notification in envelope.notifications
            ),
            return_exceptions=True,
        )
        errors = [o for o in outcomes if isinstance(o, BaseException)]
        if errors:
            for error in errors:
                logger.error(
                    f"Failed to process message {envelope.message_id}: {error}",
                    exc_info=error,
                )
            result.batch_item_failures.append(envelope.message_id)

    async def _process_tracked(
        self,
        notification: StorageNotification,
        registry: ForwarderRegistry,
        result: BatchResult,
    ) -> None:
        try:
            count = await self.process_object(notification, registry)
        except BaseException:
            result.objects_failed += 1
            raise
        result.objects_processed += 1
        result.events_forwarded += count

    async def process_object(
        self, notification: StorageNotification, registry: ForwarderRegistry
    ) -> int:
        """
        Forward every record of one access-log object.

        Args:
            notification: The object to read
            registry: Forwarders of the current invocation

        Returns:
            Number of events appended

        Raises:
            InvalidObjectKeyError: If no stream name can be derived
            ObjectFetchError: If the object cannot be read
            MalformedRecordError: On a bad line under the abort policy
            BackendError: If forwarding fails
        """
        stream_name = self.resolve_stream_name(notification.key)
        forwarder = registry.get(stream_name)
        logger.info(
            f"Transfer log file of {notification.uri} to "
            f"{self.settings.log_group}/{stream_name}"
        )

        body = await self.fetcher.fetch(notification.bucket, notification.key)
        reader = LogReader(body, notification.key, self.parse_error_policy)
        count = 0
        try:
            async for chunk in reader.iter_chunks():
                for record in chunk:
                    await forwarder.append(
                        OutputEvent.from_record(record, self.settings.message_format)
                    )
                    count += 1
        finally:
            body.close()

        # Forwarders do not outlive the invocation; flush at end of object
        await forwarder.flush()
        return count
