from fastapi import APIRouter

from affiliate_sync.dependencies import Scheduler
from affiliate_sync.schemas.snapshot import PageContext
from affiliate_sync.schemas.stats import PollingStatusResponse
from affiliate_sync.services.scheduler import PollingScheduler

router = APIRouter(prefix="/polling", tags=["Polling"])


def _status(scheduler: PollingScheduler) -> PollingStatusResponse:
    context = scheduler.page_context
    return PollingStatusResponse(
        running=scheduler.is_running,
        page_context=context.value if context else None,
        tiers=[tier.value for tier in scheduler.tiers],
        cache_ttl_seconds=scheduler.settings.cache_ttl_seconds,
        last_update=scheduler.store.get_snapshot().last_update,
        is_stale=scheduler.store.is_stale(),
    )


@router.get("", response_model=PollingStatusResponse)
async def get_polling_status(scheduler: Scheduler):
    return _status(scheduler)


@router.post("/start", response_model=PollingStatusResponse)
async def start_polling(scheduler: Scheduler, page_context: PageContext | None = None):
    await scheduler.start(page_context)
    return _status(scheduler)


@router.post("/stop", response_model=PollingStatusResponse)
async def stop_polling(scheduler: Scheduler):
    await scheduler.stop()
    return _status(scheduler)
