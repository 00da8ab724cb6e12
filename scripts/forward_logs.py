#!/usr/bin/env python3
"""
CLI for forwarding ELB access logs outside of Lambda.

Modes:
- Parse a local access-log file and print the events it would produce
- Forward a local access-log file to a CloudWatch Logs stream
- Replay a Lambda event JSON file (S3 or SQS) through the orchestrator

Usage:
    # Show the events of a local file without touching AWS
    python scripts/forward_logs.py --input data/alb.log.gz --dry-run

    # Same, with the JSON message format
    python scripts/forward_logs.py --input data/alb.log.gz --dry-run --format json

    # Forward a local file (stream name derived from the file name)
    LOG_GROUP=/elb/access python scripts/forward_logs.py --input data/123_elasticloadbalancing_us-east-1_app.my-lb.abc_20180702T2205Z_10.0.0.1_xyz.log.gz

    # Replay a captured Lambda event against real S3 and CloudWatch Logs
    LOG_GROUP=/elb/access python scripts/forward_logs.py --event data/sqs-event.json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import IO, Optional

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import boto3

from elb_log_forwarder.config import (
    ConfigurationError,
    Settings,
    load_settings,
    setup_logging,
)
from elb_log_forwarder.forwarding import (
    CloudWatchLogsBackend,
    ForwarderRegistry,
    ForwardingError,
    OutputEvent,
    RetryConfig,
    stream_name_resolver,
)
from elb_log_forwarder.ingestion import (
    IngestionError,
    LogReader,
    ParseErrorPolicy,
    StorageNotification,
)
from elb_log_forwarder.orchestrator import (
    IngestionOrchestrator,
    ObjectFetcher,
    S3ObjectFetcher,
)

logger = logging.getLogger(__name__)


class LocalFileFetcher(ObjectFetcher):
    """ObjectFetcher that opens local files, ignoring the bucket."""

    async def fetch(self, bucket: str, key: str) -> IO[bytes]:
        return open(key, "rb")


def dry_run(path: Path, message_format: str, policy: ParseErrorPolicy) -> int:
    """Print one JSON line per event of a local file."""
    with open(path, "rb") as f:
        reader = LogReader(f, path.name, policy)
        count = 0
        for record in reader:
            event = OutputEvent.from_record(record, message_format)
            print(json.dumps(event.to_dict(), ensure_ascii=False))
            count += 1

    print(
        f"Events: {count:,}  Lines: {reader.lines_read:,}  "
        f"Skipped: {reader.skipped_lines:,}",
        file=sys.stderr,
    )
    return 0


async def forward_file(path: Path, settings: Settings) -> int:
    """Forward one local file to its CloudWatch Logs stream."""
    backend = CloudWatchLogsBackend(
        boto3.client("logs"), RetryConfig(max_retries=settings.backend_max_retries)
    )
    orchestrator = IngestionOrchestrator(
        settings,
        LocalFileFetcher(),
        backend,
        # Derive the name from the file name, not the local directory
        resolve_stream_name=lambda key: stream_name_resolver(settings)(Path(key).name),
    )
    registry = ForwarderRegistry(backend, settings.log_group, settings.batch_limits)
    notification = StorageNotification(bucket="local", key=str(path))

    count = await orchestrator.process_object(notification, registry)
    rejected = registry.events_rejected
    print(f"Forwarded {count - rejected:,} events from {path} to {settings.log_group}")
    if rejected:
        print(f"Rejected {rejected:,} events for their timestamp", file=sys.stderr)
    return 0


def replay_event(event_path: Path, settings: Settings) -> int:
    """Run a captured Lambda event through the orchestrator."""
    with open(event_path, encoding="utf-8") as f:
        event = json.load(f)

    backend = CloudWatchLogsBackend(
        boto3.client("logs"), RetryConfig(max_retries=settings.backend_max_retries)
    )
    orchestrator = IngestionOrchestrator(
        settings, S3ObjectFetcher(boto3.client("s3")), backend
    )
    result = asyncio.run(orchestrator.process(event))

    print(json.dumps(result.to_dict(), indent=2))
    return 1 if result.batch_item_failures or result.objects_failed else 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Forward ELB access logs to CloudWatch Logs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--input",
        "-i",
        type=Path,
        help="Local access-log file (.log or .log.gz)",
    )
    source.add_argument(
        "--event",
        type=Path,
        help="Lambda event JSON file to replay against AWS",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print events instead of forwarding (only with --input)",
    )
    parser.add_argument(
        "--format",
        choices=["plain", "json"],
        help="Message format (default: from settings)",
    )
    parser.add_argument(
        "--skip-malformed",
        action="store_true",
        help="Skip malformed lines instead of aborting",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="YAML or SOPS-encrypted YAML config file",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)
    setup_logging("DEBUG" if args.verbose else "INFO")

    if args.dry_run and args.event:
        parser.error("--dry-run only applies to --input")

    if args.dry_run:
        policy = ParseErrorPolicy.SKIP if args.skip_malformed else ParseErrorPolicy.ABORT
        try:
            return dry_run(args.input, args.format or "plain", policy)
        except (OSError, IngestionError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    try:
        settings = load_settings(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if args.format:
        settings.message_format = args.format
    if args.skip_malformed:
        settings.parse_error_policy = ParseErrorPolicy.SKIP.value

    try:
        if args.event:
            return replay_event(args.event, settings)
        return asyncio.run(forward_file(args.input, settings))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except (OSError, IngestionError, ForwardingError) as e:
        logger.exception("Forwarding failed")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
