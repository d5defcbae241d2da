import pytest
from httpx import AsyncClient

from affiliate_sync.core.exceptions import TransportError


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert set(data["services"]) == {"polling", "cache"}


@pytest.mark.asyncio
async def test_snapshot_starts_empty(client: AsyncClient):
    response = await client.get("/api/v1/affiliate/snapshot")

    assert response.status_code == 200
    data = response.json()
    assert data["is_initialized"] is False
    assert data["last_update"] is None
    assert data["withdrawal"]["withdrawal_history"] == []


@pytest.mark.asyncio
async def test_refresh_then_stats(client: AsyncClient):
    response = await client.post("/api/v1/affiliate/refresh")
    assert response.status_code == 200
    assert response.json()["affiliate"]["affiliate_code"] == "ANA123"

    response = await client.get("/api/v1/affiliate/stats")
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_omset"] == 1725000
    assert stats["level1_count"] == 3
    assert stats["member_count_source"] == "hierarchy"
    assert stats["referral_link"].endswith("?ref=ANA123")


@pytest.mark.asyncio
async def test_network_metrics(client: AsyncClient, source):
    source.payloads["fetch_referral_hierarchy"] = {
        "referrals": [{"id": "a", "subReferrals": [{"id": "b", "level": 4}]}]
    }

    response = await client.post("/api/v1/affiliate/refresh/hierarchy")
    assert response.status_code == 200

    response = await client.get("/api/v1/affiliate/network")
    data = response.json()
    assert data["highest_downline_level"] == 4
    assert data["total_member_count"] == 2
    assert data["members_per_level"] == {"1": 1, "4": 1}


@pytest.mark.asyncio
async def test_refresh_failure_returns_error_json(client: AsyncClient, source):
    source.failures["fetch_withdrawal_balance"] = TransportError("Backend unreachable")

    response = await client.post("/api/v1/affiliate/refresh/withdrawal")

    assert response.status_code == 503
    assert response.json() == {
        "success": False,
        "error": "withdrawal refresh failed: Backend unreachable",
    }

    snapshot = (await client.get("/api/v1/affiliate/snapshot")).json()
    assert snapshot["error"] == "withdrawal refresh failed: Backend unreachable"


@pytest.mark.asyncio
async def test_unknown_refresh_target(client: AsyncClient):
    response = await client.post("/api/v1/affiliate/refresh/everything")

    assert response.status_code == 422
    assert response.json()["error"] == "Validation error"


@pytest.mark.asyncio
async def test_payment_flow(client: AsyncClient, source):
    response = await client.post("/api/v1/affiliate/invoice/regenerate")
    assert response.json()["invoice"]["status"] == "PENDING"

    response = await client.post("/api/v1/affiliate/payment")
    assert response.status_code == 200
    assert response.json() == {"success": True, "invoice_url": "https://pay.example.com/inv-2"}

    source.payloads["refresh_invoice"] = {}
    response = await client.post("/api/v1/affiliate/payment")
    assert response.status_code == 400
    assert response.json()["error"] == "No invoice URL received"


@pytest.mark.asyncio
async def test_polling_lifecycle(client: AsyncClient):
    response = await client.get("/api/v1/polling")
    assert response.json()["running"] is False

    response = await client.post("/api/v1/polling/start", params={"page_context": "withdrawal"})
    data = response.json()
    assert data["running"] is True
    assert data["page_context"] == "withdrawal"
    assert data["tiers"] == ["medium", "heavy"]
    assert data["cache_ttl_seconds"] == 300.0

    response = await client.post("/api/v1/polling/stop")
    data = response.json()
    assert data["running"] is False
    assert data["tiers"] == []


@pytest.mark.asyncio
async def test_polling_rejects_unknown_page(client: AsyncClient):
    response = await client.post("/api/v1/polling/start", params={"page_context": "nowhere"})

    assert response.status_code == 422
