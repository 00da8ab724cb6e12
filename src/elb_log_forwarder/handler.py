"""
AWS Lambda entry point.

Triggered either directly by S3 object-created notifications or by SQS
messages wrapping them. Returns an SQS partial batch response so only the
failed messages are redelivered.

Environment: see elb_log_forwarder.config.settings.Settings.from_env
"""

import asyncio
import logging
from functools import lru_cache
from typing import Any, Optional

import boto3

from .config import Settings, get_settings, setup_logging
from .forwarding.backend import CloudWatchLogsBackend
from .forwarding.retry import RetryConfig
from .orchestrator import IngestionOrchestrator, S3ObjectFetcher

logger = logging.getLogger(__name__)


@lru_cache
def _default_clients() -> tuple[Any, Any]:
    """boto3 clients reused across warm invocations."""
    return boto3.client("s3"), boto3.client("logs")


def build_orchestrator(
    settings: Settings,
    s3_client: Optional[Any] = None,
    logs_client: Optional[Any] = None,
) -> IngestionOrchestrator:
    """
    Wire an orchestrator from settings and boto3 clients.

    Args:
        settings: Validated settings
        s3_client: boto3 S3 client (default: shared client)
        logs_client: boto3 CloudWatch Logs client (default: shared client)

    Returns:
        IngestionOrchestrator
    """
    if s3_client is None or logs_client is None:
        default_s3, default_logs = _default_clients()
        s3_client = s3_client or default_s3
        logs_client = logs_client or default_logs

    backend = CloudWatchLogsBackend(
        logs_client, RetryConfig(max_retries=settings.backend_max_retries)
    )
    return IngestionOrchestrator(settings, S3ObjectFetcher(s3_client), backend)


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Forward the access logs named by an S3 or SQS event.

    Args:
        event: Lambda event
        context: Lambda context (unused)

    Returns:
        {"batchItemFailures": [{"itemIdentifier": messageId}, ...]}
    """
    settings = get_settings()
    setup_logging(settings.log_level)

    orchestrator = build_orchestrator(settings)
    result = asyncio.run(orchestrator.process(event))
    return result.to_response()
