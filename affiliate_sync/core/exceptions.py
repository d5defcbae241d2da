from fastapi import HTTPException, status


class AffiliateSyncException(HTTPException):
    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class BadRequestError(AffiliateSyncException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ConflictError(AffiliateSyncException):
    def __init__(self, detail: str = "Conflicting request"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ServiceUnavailableError(AffiliateSyncException):
    def __init__(self, detail: str = "Service temporarily unavailable"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


# Backend exceptions
class TransportError(ServiceUnavailableError):
    """Network or timeout failure reaching the backend."""

    def __init__(self, detail: str = "Backend unreachable"):
        super().__init__(detail=detail)


class BackendError(ServiceUnavailableError):
    """Backend answered with a non-2xx status."""

    def __init__(self, detail: str = "Backend request failed", upstream_status: int | None = None):
        super().__init__(detail=detail)
        self.upstream_status = upstream_status


class PartialRefreshFailure(ServiceUnavailableError):
    """One fetch of a multi-fetch refresh failed; nothing from it was committed."""

    def __init__(self, tier: str, cause: Exception):
        detail = getattr(cause, "detail", None) or str(cause) or type(cause).__name__
        super().__init__(detail=f"{tier} refresh failed: {detail}")
        self.tier = tier
        self.cause = cause


# Cache exceptions
class SupersededError(ConflictError):
    """An in-flight request was cancelled because a newer one replaced it."""

    def __init__(self, resource: str = "Request"):
        super().__init__(detail=f"{resource} superseded by a newer request")
        self.resource = resource


# Payment exceptions
class PaymentError(BadRequestError):
    def __init__(self, detail: str = "Payment processing failed"):
        super().__init__(detail=detail)
