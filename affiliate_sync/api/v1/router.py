from fastapi import APIRouter

from affiliate_sync.api.v1 import affiliate, polling

router = APIRouter(prefix="/v1")

router.include_router(affiliate.router)
router.include_router(polling.router)
