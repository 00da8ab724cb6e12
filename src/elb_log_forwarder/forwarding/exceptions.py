"""
Custom exceptions for the forwarding module.

Raised by log stream backends and stream forwarders.
"""


class ForwardingError(Exception):
    """Base exception for all forwarding-related errors."""

    pass


class BackendError(ForwardingError):
    """
    Raised when a backend call fails.

    Attributes:
        operation: Backend operation name (e.g. "PutLogEvents")
        code: Backend error code (optional)
    """

    def __init__(self, message: str, operation: str | None = None, code: str | None = None):
        self.operation = operation
        self.code = code
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with operation and code context."""
        if self.operation and self.code:
            return f"{self.operation} failed ({self.code}): {self.message}"
        elif self.operation:
            return f"{self.operation} failed: {self.message}"
        return self.message


class BackendStaleTokenError(BackendError):
    """
    Raised when an append is rejected because the sequence token is stale.

    Attributes:
        expected_token: The token the backend expects next, when reported
    """

    def __init__(
        self,
        message: str,
        expected_token: str | None = None,
        operation: str | None = "PutLogEvents",
        code: str | None = "InvalidSequenceTokenException",
    ):
        self.expected_token = expected_token
        super().__init__(message, operation=operation, code=code)


class BackendDataAlreadyAcceptedError(BackendStaleTokenError):
    """Raised when the backend reports the batch was already applied."""

    def __init__(self, message: str, expected_token: str | None = None):
        super().__init__(
            message,
            expected_token=expected_token,
            code="DataAlreadyAcceptedException",
        )


class BackendUnavailableError(BackendError):
    """Raised for transient backend failures (throttling, outages)."""

    pass


class OversizedEventError(ForwardingError):
    """
    Raised when a single event exceeds the backend's batch byte limit.

    Attributes:
        size: Event size including per-event overhead
        limit: The batch byte limit
    """

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"Event of {size} bytes exceeds the {limit}-byte batch limit"
        )
