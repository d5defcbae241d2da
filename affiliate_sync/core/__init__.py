from affiliate_sync.core.exceptions import (
    AffiliateSyncException,
    BackendError,
    BadRequestError,
    ConflictError,
    PartialRefreshFailure,
    PaymentError,
    ServiceUnavailableError,
    SupersededError,
    TransportError,
)

__all__ = [
    "AffiliateSyncException",
    "BackendError",
    "BadRequestError",
    "ConflictError",
    "PartialRefreshFailure",
    "PaymentError",
    "ServiceUnavailableError",
    "SupersededError",
    "TransportError",
]
