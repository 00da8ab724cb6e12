"""
ELB access-log forwarder.

Reads ALB / NLB / CLB access-log objects named by S3 notifications and
republishes them to CloudWatch Logs, one stream per load balancer.
"""

from .orchestrator import BatchResult, IngestionOrchestrator, S3ObjectFetcher

__version__ = "0.1.0"

__all__ = [
    "BatchResult",
    "IngestionOrchestrator",
    "S3ObjectFetcher",
    "__version__",
]
