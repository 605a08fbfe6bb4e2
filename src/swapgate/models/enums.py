"""String enums for ledger and relay vocabularies."""

from enum import StrEnum


class SessionStatus(StrEnum):
    CREATED = "created"
    SUCCESS = "success"
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"


# No ledger transition leaves these states.
TERMINAL_STATUSES = frozenset(
    {
        SessionStatus.SUCCESS,
        SessionStatus.COMPLETED,
        SessionStatus.FAILED,
        SessionStatus.EXPIRED,
    }
)

# Reaching one of these notifies the wallet's registered device.
NOTIFY_STATUSES = frozenset({SessionStatus.SUCCESS, SessionStatus.COMPLETED})


class WertAuthScheme(StrEnum):
    BEARER = "bearer"
    X_API_KEY = "x-api-key"


class StreamEvent(StrEnum):
    READY = "ready"
    PRICE = "price"
    HEARTBEAT = "heartbeat"
