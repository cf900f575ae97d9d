"""Error taxonomy shared by the validator, flows and transport."""

from enum import Enum


class ErrorKind(str, Enum):
    """Categories of user-facing failures."""

    FORMAT_INVALID = "FORMAT_INVALID"                  # Re-prompt with expected format
    RATE_LIMITED = "RATE_LIMITED"                      # Wait for lockout to expire
    SECURITY_REJECTED = "SECURITY_REJECTED"            # Replay or oversized input
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"      # Timeout or server error, retryable
    UPSTREAM_MISCONFIGURED = "UPSTREAM_MISCONFIGURED"  # Auth failure, operator must fix
    NOT_FOUND = "NOT_FOUND"                            # Unknown code or account


class FlowError(Exception):
    """Raised inside a flow handler; converted to an outbound message by the engine."""

    def __init__(self, kind: ErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(self.message)


class MalformedMessageError(Exception):
    """Inbound event carried no usable message body."""
