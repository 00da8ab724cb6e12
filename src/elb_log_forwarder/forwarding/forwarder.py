"""
Per-stream batch forwarder.

A StreamForwarder buffers events for one destination stream and sends them
to the backend in batches that respect the backend's byte and count limits.
It also owns the stream's sequence-token handshake:

    NEW    no append made yet; the stream may not exist
    READY  stream ensured; sequence_token holds the token for the next append

Every append and flush on one forwarder is serialized by an asyncio.Lock,
so concurrent object tasks feeding the same stream never race on a token.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from ..config.settings import BatchLimits
from .backend import LogStreamBackend
from .exceptions import (
    BackendDataAlreadyAcceptedError,
    BackendStaleTokenError,
    OversizedEventError,
)
from .models import AppendResult, OutputEvent, StreamDescription

logger = logging.getLogger(__name__)


class ForwarderState(Enum):
    """Lifecycle state of a StreamForwarder."""

    NEW = "new"
    READY = "ready"


class StreamForwarder:
    """
    Batches events for one log stream and flushes them to the backend.

    Events are sent in the order they were appended. If adding an event
    would push the pending batch past max_batch_bytes or max_batch_count,
    the pending batch is flushed first.

    Example:
        forwarder = StreamForwarder(backend, "/elb/access", "my-loadbalancer")
        for record in reader:
            await forwarder.append(OutputEvent.from_record(record))
        await forwarder.flush()
    """

    def __init__(
        self,
        backend: LogStreamBackend,
        log_group: str,
        stream_name: str,
        limits: Optional[BatchLimits] = None,
    ):
        """
        Initialize forwarder.

        Args:
            backend: Log stream backend
            log_group: Destination log group
            stream_name: Destination stream
            limits: Backend batch limits (default: CloudWatch limits)
        """
        self.backend = backend
        self.log_group = log_group
        self.stream_name = stream_name
        self.limits = limits or BatchLimits()
        self.sequence_token: Optional[str] = None
        self.events_forwarded = 0
        self.events_rejected = 0
        self.batches_sent = 0
        self._events: list[OutputEvent] = []
        self._pending_bytes = 0
        self._ready = False
        self._lock = asyncio.Lock()

    @property
    def state(self) -> ForwarderState:
        return ForwarderState.READY if self._ready else ForwarderState.NEW

    @property
    def pending_events(self) -> tuple[OutputEvent, ...]:
        return tuple(self._events)

    @property
    def pending_bytes(self) -> int:
        """Pending batch size including per-event overhead."""
        return self._pending_bytes

    def __repr__(self) -> str:
        return (
            f"StreamForwarder({self.log_group}/{self.stream_name}, "
            f"state={self.state.value}, pending={len(self._events)})"
        )

    async def append(self, event: OutputEvent) -> None:
        """
        Buffer an event, flushing the pending batch first if it would overflow.

        Args:
            event: Event to buffer

        Raises:
            OversizedEventError: If the event alone exceeds the byte limit
            BackendError: If a triggered flush fails
        """
        event_bytes = event.size + self.limits.event_overhead
        if event_bytes > self.limits.max_batch_bytes:
            raise OversizedEventError(event_bytes, self.limits.max_batch_bytes)

        async with self._lock:
            if (
                self._pending_bytes + event_bytes > self.limits.max_batch_bytes
                or len(self._events) >= self.limits.max_batch_count
            ):
                await self._flush_locked()

            self._events.append(event)
            self._pending_bytes += event_bytes

    async def flush(self) -> None:
        """
        Send all pending events as one batch.

        Ensures the stream exists on the first call even when nothing is
        pending.

        Raises:
            BackendError: If the stream cannot be ensured or the append fails
        """
        async with self._lock:
            await self._flush_locked()

    async def _flush_locked(self) -> None:
        if not self._ready:
            await self._ensure_stream()

        if not self._events:
            return

        try:
            result = await self._append_pending()
        except BackendStaleTokenError as e:
            # One retry with the backend's current token
            logger.warning(
                f"Stale sequence token for {self.log_group}/{self.stream_name}, "
                f"retrying once: {e}"
            )
            self.sequence_token = e.expected_token or await self._current_token()
            result = await self._append_pending()

        count = len(self._events)
        self.sequence_token = result.next_token
        self._events = []
        self._pending_bytes = 0
        self.events_forwarded += count - result.rejected_count
        self.events_rejected += result.rejected_count
        self.batches_sent += 1

        logger.debug(
            f"Flushed {count} events to {self.log_group}/{self.stream_name}"
        )

    async def _append_pending(self) -> AppendResult:
        try:
            return await self.backend.append_events(
                self.log_group, self.stream_name, self._events, self.sequence_token
            )
        except BackendDataAlreadyAcceptedError as e:
            logger.warning(
                f"Batch already accepted by {self.log_group}/{self.stream_name}; "
                f"treating as sent"
            )
            return AppendResult(next_token=e.expected_token)

    async def _ensure_stream(self) -> None:
        stream = await self._describe_stream()
        if stream is not None:
            self.sequence_token = stream.upload_sequence_token
        else:
            await self.backend.create_stream(self.log_group, self.stream_name)
            self.sequence_token = None
        self._ready = True

    async def _current_token(self) -> Optional[str]:
        stream = await self._describe_stream()
        return stream.upload_sequence_token if stream is not None else None

    async def _describe_stream(self) -> Optional[StreamDescription]:
        streams = await self.backend.list_streams(self.log_group, self.stream_name)
        for stream in streams:
            if stream.name == self.stream_name:
                return stream
        return None
