"""
Constants for CloudWatch Logs batching and ELB access-log conventions.
"""

# =============================================================================
# CloudWatch Logs PutLogEvents limits
# =============================================================================

# https://docs.aws.amazon.com/AmazonCloudWatchLogs/latest/APIReference/API_PutLogEvents.html
MAX_BATCH_SIZE = 1048576  # bytes per PutLogEvents call
MAX_BATCH_COUNT = 10000  # events per PutLogEvents call
LOG_EVENT_OVERHEAD = 26  # bytes added per event

# =============================================================================
# Backend error codes
# =============================================================================

STALE_TOKEN_ERROR_CODES = frozenset(["InvalidSequenceTokenException"])
ALREADY_ACCEPTED_ERROR_CODES = frozenset(["DataAlreadyAcceptedException"])
ALREADY_EXISTS_ERROR_CODES = frozenset(["ResourceAlreadyExistsException"])

# Transient failures worth retrying before giving the item back to SQS
UNAVAILABLE_ERROR_CODES = frozenset(
    [
        "ServiceUnavailableException",
        "ThrottlingException",
        "RequestLimitExceeded",
        "TooManyRequestsException",
        "InternalFailure",
    ]
)

# =============================================================================
# Configuration choices
# =============================================================================

MESSAGE_FORMATS = ("plain", "json")
STREAM_NAME_SOURCES = ("elb-name", "elb-fullname")
PARSE_ERROR_POLICIES = ("abort", "skip")

DEFAULT_MESSAGE_FORMAT = "plain"
DEFAULT_STREAM_NAME_SOURCE = "elb-name"
DEFAULT_PARSE_ERROR_POLICY = "abort"
DEFAULT_BACKEND_MAX_RETRIES = 2
DEFAULT_LOG_LEVEL = "INFO"
