"""
Log stream backends.

A backend exposes the three stream operations a forwarder needs:
list streams by prefix, create a stream, and append events under a
sequence token. CloudWatchLogsBackend implements them over a boto3
"logs" client; tests substitute an in-memory backend.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from ..config.constants import (
    ALREADY_ACCEPTED_ERROR_CODES,
    ALREADY_EXISTS_ERROR_CODES,
    STALE_TOKEN_ERROR_CODES,
    UNAVAILABLE_ERROR_CODES,
)
from .exceptions import (
    BackendDataAlreadyAcceptedError,
    BackendError,
    BackendStaleTokenError,
    BackendUnavailableError,
)
from .models import AppendResult, OutputEvent, StreamDescription
from .retry import RetryConfig, RetryManager

logger = logging.getLogger(__name__)


def count_rejected_events(info: dict[str, int], event_count: int) -> int:
    """
    Count the events covered by a PutLogEvents rejectedLogEventsInfo.

    Too-old and expired events form a prefix of the batch (end index
    exclusive); too-new events form a suffix (start index inclusive).

    Args:
        info: rejectedLogEventsInfo from the response
        event_count: Number of events sent

    Returns:
        Number of events refused
    """
    head = max(
        info.get("tooOldLogEventEndIndex", 0),
        info.get("expiredLogEventEndIndex", 0),
    )
    head = min(head, event_count)
    tail_start = info.get("tooNewLogEventStartIndex", event_count)
    tail_start = max(tail_start, head)
    return head + max(0, event_count - tail_start)


class LogStreamBackend(ABC):
    """
    Abstract log aggregation backend.

    Subclasses must implement:
        - list_streams(): Streams in a group whose name starts with a prefix
        - create_stream(): Create a stream (no-op if it already exists)
        - append_events(): Append events, returning the next sequence token
          and the number of events the backend refused
    """

    @abstractmethod
    async def list_streams(
        self, log_group: str, name_prefix: str
    ) -> list[StreamDescription]:
        """
        List streams whose name starts with name_prefix.

        Raises:
            BackendError: If the call fails
        """
        pass

    @abstractmethod
    async def create_stream(self, log_group: str, name: str) -> None:
        """
        Create a stream.

        Raises:
            BackendError: If the call fails for a reason other than
                the stream already existing
        """
        pass

    @abstractmethod
    async def append_events(
        self,
        log_group: str,
        name: str,
        events: Sequence[OutputEvent],
        sequence_token: Optional[str] = None,
    ) -> AppendResult:
        """
        Append events to a stream as one batch.

        Returns:
            AppendResult with the next sequence token and the count of
            events refused for their timestamp

        Raises:
            BackendStaleTokenError: If sequence_token is not the current one
            BackendUnavailableError: For transient failures
            BackendError: For other failures
        """
        pass


class CloudWatchLogsBackend(LogStreamBackend):
    """
    CloudWatch Logs backend over a boto3 "logs" client.

    boto3 calls block, so each one runs in a worker thread. Throttling and
    service errors are retried with backoff before surfacing as
    BackendUnavailableError.

    Example:
        backend = CloudWatchLogsBackend(boto3.client("logs"))
        result = await backend.append_events("/elb/access", "my-lb", events)
    """

    def __init__(self, client: Any, retry_config: Optional[RetryConfig] = None):
        """
        Initialize backend.

        Args:
            client: boto3 CloudWatch Logs client
            retry_config: Retry configuration for transient failures
        """
        self.client = client
        self._retry = RetryManager(config=retry_config)

    async def list_streams(
        self, log_group: str, name_prefix: str
    ) -> list[StreamDescription]:
        streams = []
        kwargs: dict[str, Any] = {
            "logGroupName": log_group,
            "logStreamNamePrefix": name_prefix,
        }
        while True:
            response = await self._call("describe_log_streams", **kwargs)
            for stream in response.get("logStreams", []):
                streams.append(
                    StreamDescription(
                        name=stream["logStreamName"],
                        upload_sequence_token=stream.get("uploadSequenceToken"),
                    )
                )
            next_token = response.get("nextToken")
            if not next_token:
                return streams
            kwargs["nextToken"] = next_token

    async def create_stream(self, log_group: str, name: str) -> None:
        try:
            await self._call(
                "create_log_stream", logGroupName=log_group, logStreamName=name
            )
            logger.info(f"Created log stream {log_group}/{name}")
        except BackendError as e:
            if e.code in ALREADY_EXISTS_ERROR_CODES:
                logger.debug(f"Log stream {log_group}/{name} already exists")
                return
            raise

    async def append_events(
        self,
        log_group: str,
        name: str,
        events: Sequence[OutputEvent],
        sequence_token: Optional[str] = None,
    ) -> AppendResult:
        kwargs: dict[str, Any] = {
            "logGroupName": log_group,
            "logStreamName": name,
            "logEvents": [event.to_dict() for event in events],
        }
        if sequence_token:
            kwargs["sequenceToken"] = sequence_token

        response = await self._call("put_log_events", **kwargs)

        rejected_count = 0
        rejected = response.get("rejectedLogEventsInfo")
        if rejected:
            rejected_count = count_rejected_events(rejected, len(events))
            logger.warning(
                f"CloudWatch rejected {rejected_count} of {len(events)} events "
                f"in {log_group}/{name}: {rejected}"
            )

        return AppendResult(
            next_token=response.get("nextSequenceToken"),
            rejected_count=rejected_count,
        )

    async def _call(self, method: str, **kwargs: Any) -> dict:
        return await self._retry.execute(self._call_once, method, **kwargs)

    async def _call_once(self, method: str, **kwargs: Any) -> dict:
        try:
            return await asyncio.to_thread(getattr(self.client, method), **kwargs)
        except ClientError as e:
            raise self._translate_client_error(e, method) from e
        except BotoCoreError as e:
            raise BackendUnavailableError(str(e), operation=method) from e

    @staticmethod
    def _translate_client_error(error: ClientError, operation: str) -> BackendError:
        """Map a botocore ClientError onto the backend exception hierarchy."""
        error_info = error.response.get("Error", {})
        code = error_info.get("Code", "")
        message = error_info.get("Message", str(error))
        expected_token = error.response.get(
            "expectedSequenceToken"
        ) or error_info.get("expectedSequenceToken")

        if code in ALREADY_ACCEPTED_ERROR_CODES:
            return BackendDataAlreadyAcceptedError(message, expected_token=expected_token)
        if code in STALE_TOKEN_ERROR_CODES:
            return BackendStaleTokenError(
                message, expected_token=expected_token, operation=operation, code=code
            )
        if code in UNAVAILABLE_ERROR_CODES:
            return BackendUnavailableError(message, operation=operation, code=code)
        return BackendError(message, operation=operation, code=code)
