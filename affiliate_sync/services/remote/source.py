import logging
from typing import Any

from affiliate_sync.core.exceptions import BackendError, TransportError
from affiliate_sync.services.remote.client import AffiliateApiClient, get_api_client
from affiliate_sync.services.remote.payloads import normalize_program_totals
from affiliate_sync.utils.coerce import as_dict, as_list

logger = logging.getLogger(__name__)

PROGRAM_DASHBOARD_ENDPOINTS = ("/v1/affiliate/dashboard/komisi", "/affiliate/dashboard/komisi")


class RemoteDataSource:
    """Async fetchers for every backend resource the cache store consumes."""

    def __init__(self, client: AffiliateApiClient | None = None):
        self.client = client or get_api_client()

    async def fetch_profile(self) -> dict[str, Any]:
        data = await self.client.get("/v1/users/profile")
        return as_dict(as_dict(data).get("user"))

    async def fetch_activation_status(self) -> dict[str, Any]:
        return as_dict(await self.client.get("/v1/affiliate/activation-status"))

    async def fetch_referral_program(self) -> dict[str, Any]:
        primary, fallback = PROGRAM_DASHBOARD_ENDPOINTS
        try:
            data = await self.client.get(primary)
        except (BackendError, TransportError) as e:
            logger.warning(f"Program dashboard {primary} failed ({e.detail}), trying {fallback}")
            data = await self.client.get(fallback)
        return normalize_program_totals(data)

    async def fetch_referral_hierarchy(self) -> dict[str, Any]:
        data = await self.client.get("/v1/commissions/referral-hierarchy")
        if isinstance(data, list):
            return {"referrals": data}
        return as_dict(data)

    async def fetch_commission_breakdown(
        self,
        page: int = 1,
        limit: int = 10,
        status: str | None = "ALL",
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if status:
            params["status"] = status
        return as_dict(await self.client.get("/v1/breakdown", params=params))

    async def fetch_withdrawal_balance(self) -> dict[str, Any]:
        data = await self.client.get("/v1/withdrawals/balance")
        return as_dict(as_dict(data).get("balance"))

    async def fetch_withdrawal_history(
        self,
        page: int = 1,
        limit: int = 20,
        status: str = "ALL",
    ) -> list[dict[str, Any]]:
        data = await self.client.get(
            "/v1/withdrawals/history",
            params={"status": status, "page": page, "limit": limit},
        )
        return as_list(as_dict(data).get("withdrawals"))

    async def refresh_invoice(self) -> dict[str, Any]:
        return as_dict(await self.client.post("/v1/payments/refresh-invoice"))

    async def create_registration_invoice(self, amount: int) -> dict[str, Any]:
        return as_dict(await self.client.post("/v1/payment/create-invoice", {"amount": amount}))

    async def start_payment_polling(self) -> dict[str, Any]:
        return as_dict(await self.client.post("/v1/payments/start-polling"))
