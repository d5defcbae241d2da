import asyncio
import copy
from collections import Counter
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from affiliate_sync.config import Settings
from affiliate_sync.dependencies import get_scheduler, get_store
from affiliate_sync.main import app
from affiliate_sync.services import AffiliateStore, PollingScheduler


def default_payloads() -> dict[str, Any]:
    return {
        "fetch_profile": {
            "id": 7,
            "email": "ana@example.com",
            "fullName": "Ana Putri",
            "phone": "08123456789",
        },
        "fetch_activation_status": {
            "isActive": True,
            "earnInfo": {"affiliateCode": "ANA123"},
            "affiliate": {
                "registeredAt": "2024-01-01T00:00:00Z",
                "activatedAt": "2024-01-02T00:00:00Z",
            },
            "payment": {
                "id": "inv-1",
                "amount": 75000,
                "status": "COMPLETED",
                "invoiceUrl": "https://pay.example.com/inv-1",
            },
        },
        "fetch_referral_program": {
            "affiliate": {"code": "ANA123", "totalEarnings": 500000, "totalPaid": 100000},
            "summary": {"totalMembers": 0},
            "referrals": {
                "list": [
                    {"id": "r1", "code": "R1", "status": "ACTIVE", "networkMembersCount": 2},
                    {"id": "r2", "code": "R2", "status": "ACTIVE", "subReferralsCount": 1},
                    {"id": "r3", "code": "R3", "status": "PENDING"},
                ],
                "totalCount": 3,
            },
            "earnings": {"total": 300000, "pending": 50000, "approved": 250000},
        },
        "fetch_referral_hierarchy": {"referrals": []},
        "fetch_commission_breakdown": {
            "byLevel": {
                "level_1": {"count": 3, "total": 150000, "pending": 50000, "approved": 100000},
                "level_2": {"count": 2, "total": 40000, "pending": 0, "approved": 40000},
            },
        },
        "fetch_withdrawal_balance": {
            "availableForWithdrawal": 250000,
            "pendingWithdrawal": 50000,
            "completedWithdrawal": 100000,
            "totalEarned": 400000,
            "inWallet": 300000,
        },
        "fetch_withdrawal_history": [
            {"id": "w1", "amount": 100000, "status": "completed", "bankName": "BCA"},
        ],
        "refresh_invoice": {
            "invoice": {
                "id": "inv-2",
                "amount": 75000,
                "status": "PENDING",
                "invoiceUrl": "https://pay.example.com/inv-2",
            },
        },
        "create_registration_invoice": {
            "invoice": {
                "id": "inv-3",
                "amount": 75000,
                "status": "EXPIRED",
                "invoiceUrl": "https://pay.example.com/inv-3",
            },
        },
        "start_payment_polling": {"success": True},
    }


class FakeDataSource:
    """
    In-memory stand-in for RemoteDataSource.

    ``payloads[name]`` may be a plain value (deep-copied per call) or an async
    callable receiving the 1-based call number. ``gates[name]`` holds a call
    until the event is set; ``failures[name]`` makes every call raise.
    """

    def __init__(self):
        self.payloads = default_payloads()
        self.calls: Counter[str] = Counter()
        self.gates: dict[str, asyncio.Event] = {}
        self.failures: dict[str, Exception] = {}
        self.arguments: dict[str, tuple] = {}

    async def _serve(self, name: str, *args: Any, **kwargs: Any) -> Any:
        self.calls[name] += 1
        self.arguments[name] = (args, kwargs)
        call_number = self.calls[name]

        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        if name in self.failures:
            raise self.failures[name]

        payload = self.payloads[name]
        if callable(payload):
            return await payload(call_number)
        return copy.deepcopy(payload)

    async def fetch_profile(self):
        return await self._serve("fetch_profile")

    async def fetch_activation_status(self):
        return await self._serve("fetch_activation_status")

    async def fetch_referral_program(self):
        return await self._serve("fetch_referral_program")

    async def fetch_referral_hierarchy(self):
        return await self._serve("fetch_referral_hierarchy")

    async def fetch_commission_breakdown(self, page=1, limit=10, status="ALL"):
        return await self._serve("fetch_commission_breakdown", page=page, limit=limit, status=status)

    async def fetch_withdrawal_balance(self):
        return await self._serve("fetch_withdrawal_balance")

    async def fetch_withdrawal_history(self, page=1, limit=20, status="ALL"):
        return await self._serve("fetch_withdrawal_history", page=page, limit=limit, status=status)

    async def refresh_invoice(self):
        return await self._serve("refresh_invoice")

    async def create_registration_invoice(self, amount):
        return await self._serve("create_registration_invoice", amount)

    async def start_payment_polling(self):
        return await self._serve("start_payment_polling")


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    return Settings(
        cache_ttl_seconds=300.0,
        fast_poll_interval_seconds=0.01,
        medium_poll_interval_seconds=0.01,
        heavy_poll_interval_seconds=0.01,
        request_retry_attempts=1,
        product_price=575000,
        registration_fee=75000,
        commission_breakdown_limit=20,
        heavy_commission_limit=5,
        withdrawal_history_limit=20,
    )


@pytest.fixture
def source() -> FakeDataSource:
    return FakeDataSource()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(source, settings, clock) -> AffiliateStore:
    return AffiliateStore(source, settings, clock=clock)


@pytest.fixture
def scheduler(store, settings) -> PollingScheduler:
    return PollingScheduler(store, settings)


@pytest_asyncio.fixture
async def client(store, scheduler):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_scheduler] = lambda: scheduler

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    await scheduler.stop()
    app.dependency_overrides.clear()
