"""
Per-invocation registry of stream forwarders.

Maps each destination stream name to exactly one StreamForwarder, so all
records bound for the same stream share one buffer and one sequence token.
Also provides the pure mapping from an access-log object key to a stream name.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from ..config.settings import BatchLimits, Settings
from ..ingestion.exceptions import InvalidObjectKeyError
from .backend import LogStreamBackend
from .forwarder import StreamForwarder

logger = logging.getLogger(__name__)

# Position of the load balancer segment in an access-log file name
ELB_SEGMENT_INDEX = 3


class StreamNameSource(Enum):
    """How a stream name is derived from an object key."""

    ELB_NAME = "elb-name"  # my-loadbalancer
    ELB_FULLNAME = "elb-fullname"  # app/my-loadbalancer/50dc6c495c0c9188
    FIXED = "fixed"  # one configured name for every object


def resolve_stream_name(
    key: str,
    source: StreamNameSource = StreamNameSource.ELB_NAME,
    fixed_name: Optional[str] = None,
) -> str:
    """
    Derive the destination stream name from an access-log object key.

    File name conventions:
        ALB: account_elasticloadbalancing_region_app.lb-name.lb-id_end-time_ip_random.log.gz
        NLB: account_elasticloadbalancing_region_net.lb-name.lb-id_end-time_random.log.gz
        CLB: account_elasticloadbalancing_region_lb-name_end-time_ip_random.log

    Args:
        key: Object key
        source: Naming mode
        fixed_name: Stream name for StreamNameSource.FIXED

    Returns:
        Stream name

    Raises:
        InvalidObjectKeyError: If the key does not follow the convention
        ValueError: If FIXED is requested without a name
    """
    if source is StreamNameSource.FIXED:
        if not fixed_name:
            raise ValueError("fixed_name is required for StreamNameSource.FIXED")
        return fixed_name

    items = key[key.rfind("/") + 1 :].split("_")
    if len(items) <= ELB_SEGMENT_INDEX:
        raise InvalidObjectKeyError(
            key, f"expected at least {ELB_SEGMENT_INDEX + 1} '_'-separated items"
        )

    elb_segment = items[ELB_SEGMENT_INDEX].split(".")
    if len(elb_segment) >= 3:
        # application or network load balancer
        if source is StreamNameSource.ELB_FULLNAME:
            return "/".join(elb_segment)
        return elb_segment[1]

    # classic load balancer
    return elb_segment[0]


def stream_name_resolver(settings: Settings) -> Callable[[str], str]:
    """
    Build the key -> stream name function for a deployment's settings.

    Args:
        settings: Validated settings

    Returns:
        Function mapping an object key to a stream name
    """
    if settings.uses_fixed_stream_name:
        source = StreamNameSource.FIXED
    else:
        source = StreamNameSource(settings.stream_name_source)
    fixed_name = settings.stream_name

    def resolve(key: str) -> str:
        return resolve_stream_name(key, source, fixed_name)

    return resolve


class ForwarderRegistry:
    """
    Registry of StreamForwarders for one invocation.

    Usage:
        registry = ForwarderRegistry(backend, "/elb/access")
        forwarder = registry.get("my-loadbalancer")
        assert registry.get("my-loadbalancer") is forwarder
        print(registry.names(), registry.events_rejected)
    """

    def __init__(
        self,
        backend: LogStreamBackend,
        log_group: str,
        limits: Optional[BatchLimits] = None,
    ):
        """
        Initialize registry.

        Args:
            backend: Backend shared by every forwarder
            log_group: Destination log group
            limits: Batch limits handed to every forwarder
        """
        self.backend = backend
        self.log_group = log_group
        self.limits = limits or BatchLimits()
        self._forwarders: dict[str, StreamForwarder] = {}

    def get(self, stream_name: str) -> StreamForwarder:
        """
        Get the forwarder for a stream, creating it on first use.

        Args:
            stream_name: Destination stream name

        Returns:
            The one StreamForwarder for this stream name
        """
        forwarder = self._forwarders.get(stream_name)
        if forwarder is None:
            forwarder = StreamForwarder(
                self.backend, self.log_group, stream_name, self.limits
            )
            self._forwarders[stream_name] = forwarder
            logger.debug(f"Registered forwarder for stream: {stream_name}")
        return forwarder

    def names(self) -> list[str]:
        """
        List registered stream names.

        Returns:
            Sorted list of stream names
        """
        return sorted(self._forwarders)

    def __contains__(self, stream_name: str) -> bool:
        return stream_name in self._forwarders

    def __len__(self) -> int:
        return len(self._forwarders)

    @property
    def events_rejected(self) -> int:
        """Events refused by the backend across all registered forwarders."""
        return sum(f.events_rejected for f in self._forwarders.values())
