from enum import Enum

from fastapi import APIRouter

from affiliate_sync.dependencies import Store
from affiliate_sync.schemas.snapshot import AffiliateSnapshot, PaymentResponse
from affiliate_sync.schemas.stats import DashboardStats, NetworkMetricsResponse

router = APIRouter(prefix="/affiliate", tags=["Affiliate"])


class RefreshTarget(str, Enum):
    INVOICE = "invoice"
    HIERARCHY = "hierarchy"
    WITHDRAWAL = "withdrawal"
    PROGRAM = "program"
    COMMISSIONS = "commissions"


@router.get("/snapshot", response_model=AffiliateSnapshot)
async def get_snapshot(store: Store):
    return store.get_snapshot()


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(store: Store):
    return store.dashboard_stats()


@router.get("/network", response_model=NetworkMetricsResponse)
async def get_network_metrics(store: Store):
    return store.network_metrics().to_dict()


@router.post("/refresh", response_model=AffiliateSnapshot)
async def refresh_all(store: Store):
    await store.refresh()
    return store.get_snapshot()


@router.post("/refresh/{target}", response_model=AffiliateSnapshot)
async def refresh_target(target: RefreshTarget, store: Store):
    refreshers = {
        RefreshTarget.INVOICE: store.refresh_invoice,
        RefreshTarget.HIERARCHY: store.refresh_referral_hierarchy,
        RefreshTarget.WITHDRAWAL: store.refresh_withdrawal,
        RefreshTarget.PROGRAM: store.refresh_referral_program,
        RefreshTarget.COMMISSIONS: store.refresh_commission_breakdown,
    }
    await refreshers[target]()
    return store.get_snapshot()


@router.post("/invoice/regenerate", response_model=AffiliateSnapshot)
async def regenerate_invoice(store: Store):
    await store.regenerate_invoice()
    return store.get_snapshot()


@router.post("/payment", response_model=PaymentResponse)
async def start_payment(store: Store):
    invoice_url = await store.handle_payment()
    return PaymentResponse(invoice_url=invoice_url)
