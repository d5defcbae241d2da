from typing import Annotated

from fastapi import Depends, Request

from affiliate_sync.core.exceptions import ServiceUnavailableError
from affiliate_sync.services.scheduler import PollingScheduler
from affiliate_sync.services.store import AffiliateStore


def get_store(request: Request) -> AffiliateStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise ServiceUnavailableError("Affiliate store not initialized")
    return store


def get_scheduler(request: Request) -> PollingScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise ServiceUnavailableError("Polling scheduler not initialized")
    return scheduler


# Type aliases for dependency injection
Store = Annotated[AffiliateStore, Depends(get_store)]
Scheduler = Annotated[PollingScheduler, Depends(get_scheduler)]
