"""
Forwarding layer: batching parsed records into CloudWatch Logs streams.

Usage:
    from elb_log_forwarder.forwarding import (
        CloudWatchLogsBackend,
        ForwarderRegistry,
        OutputEvent,
    )

    registry = ForwarderRegistry(CloudWatchLogsBackend(logs_client), "/elb/access")
    forwarder = registry.get("my-loadbalancer")
    await forwarder.append(OutputEvent.from_record(record))
    await forwarder.flush()
"""

from .backend import CloudWatchLogsBackend, LogStreamBackend
from .exceptions import (
    BackendDataAlreadyAcceptedError,
    BackendError,
    BackendStaleTokenError,
    BackendUnavailableError,
    ForwardingError,
    OversizedEventError,
)
from .forwarder import ForwarderState, StreamForwarder
from .models import AppendResult, OutputEvent, StreamDescription
from .registry import (
    ForwarderRegistry,
    StreamNameSource,
    resolve_stream_name,
    stream_name_resolver,
)
from .retry import RetryConfig, RetryManager

__all__ = [
    # Models
    "OutputEvent",
    "StreamDescription",
    "AppendResult",
    # Backends
    "LogStreamBackend",
    "CloudWatchLogsBackend",
    # Forwarders
    "ForwarderState",
    "StreamForwarder",
    "ForwarderRegistry",
    "StreamNameSource",
    "resolve_stream_name",
    "stream_name_resolver",
    # Retry
    "RetryConfig",
    "RetryManager",
    # Exceptions
    "ForwardingError",
    "BackendError",
    "BackendStaleTokenError",
    "BackendDataAlreadyAcceptedError",
    "BackendUnavailableError",
    "OversizedEventError",
]
