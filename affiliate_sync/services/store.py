"""
Synchronized cache store for affiliate, commission and withdrawal state.

The store holds one immutable ``AffiliateSnapshot``. Every refresh awaits its
fetches first and then commits a single ``model_copy(update=...)`` built from
the snapshot current *at commit time*, touching only the fields that refresh
owns. Concurrent refreshes therefore never erase each other's data, and a
reader never observes a half-applied update.

Failures commit only ``error`` (plus ``loading=False``) and re-raise; data
already in the snapshot is kept.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from affiliate_sync.config import Settings, settings as default_settings
from affiliate_sync.core.exceptions import (
    PartialRefreshFailure,
    PaymentError,
    SupersededError,
)
from affiliate_sync.schemas.snapshot import (
    AffiliateSnapshot,
    AffiliateState,
    InvoiceState,
    InvoiceStatus,
    WithdrawalState,
)
from affiliate_sync.schemas.stats import DashboardStats
from affiliate_sync.services.network import (
    DerivedNetworkMetrics,
    build_dashboard_stats,
    snapshot_network_metrics,
)
from affiliate_sync.services.remote.payloads import (
    extract_activated_at,
    extract_affiliate_code,
    extract_invoice,
    parse_profile,
    parse_withdrawal_balance,
    parse_withdrawal_history,
)
from affiliate_sync.services.superseder import RequestSuperseder
from affiliate_sync.utils.coerce import dig, to_float

logger = logging.getLogger(__name__)

Listener = Callable[[AffiliateSnapshot], None]
Changes = dict[str, Any] | Callable[[AffiliateSnapshot], dict[str, Any]]


def _error_message(exc: BaseException, default: str) -> str:
    return getattr(exc, "detail", None) or str(exc) or default


class AffiliateStore:
    def __init__(
        self,
        source: Any,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.source = source
        self.settings = settings or default_settings
        self._clock = clock
        self._snapshot = AffiliateSnapshot()
        self._listeners: list[Listener] = []
        self._hierarchy = RequestSuperseder("referral hierarchy")

    # Reads

    def get_snapshot(self) -> AffiliateSnapshot:
        return self._snapshot

    def cache_age(self) -> float | None:
        if self._snapshot.last_update is None:
            return None
        return self._clock() - self._snapshot.last_update

    def is_stale(self, ttl: float | None = None) -> bool:
        """True when nothing was fetched yet or the last update is ``ttl`` seconds old."""
        ttl = self.settings.cache_ttl_seconds if ttl is None else ttl
        age = self.cache_age()
        return age is None or age >= ttl

    def network_metrics(self) -> DerivedNetworkMetrics:
        return snapshot_network_metrics(
            self._snapshot, max_depth=self.settings.max_traversal_depth
        )

    def dashboard_stats(self) -> DashboardStats:
        return build_dashboard_stats(self._snapshot, self.settings)

    @property
    def hierarchy_in_flight(self) -> bool:
        return self._hierarchy.in_flight

    # Change notification

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def commit(self, changes: Changes) -> AffiliateSnapshot:
        current = self._snapshot
        update = changes(current) if callable(changes) else changes
        self._snapshot = current.model_copy(update=update)

        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception as e:
                logger.error(f"Error in snapshot listener {listener!r}: {e}")
        return self._snapshot

    def _stamp(self) -> dict[str, Any]:
        return {"last_update": self._clock()}

    def _fail(self, exc: BaseException, default: str, **changes: Any) -> None:
        message = _error_message(exc, default)
        logger.error(f"{default}: {message}")
        self.commit({**changes, "error": message})

    async def _gather(self, tier: str, *fetches: Awaitable[Any]) -> list[Any]:
        """Run fetches concurrently; the first failure fails the whole refresh."""
        try:
            return list(await asyncio.gather(*fetches))
        except Exception as e:
            raise PartialRefreshFailure(tier, e) from e

    # Full refresh

    async def refresh(self) -> None:
        """Profile, activation, code, program and commission breakdown, all or nothing."""
        self.commit({"loading": True, "error": None})
        try:
            profile, status, program, commissions = await self._gather(
                "full",
                self.source.fetch_profile(),
                self.source.fetch_activation_status(),
                self.source.fetch_referral_program(),
                self.source.fetch_commission_breakdown(
                    page=1, limit=self.settings.commission_breakdown_limit
                ),
            )
        except asyncio.CancelledError:
            self.commit({"loading": False})
            raise
        except Exception as e:
            self._fail(e, "Failed to refresh data", loading=False)
            raise

        affiliate = AffiliateState(
            is_active=bool(status.get("isActive")),
            affiliate_code=extract_affiliate_code(status),
            registered_at=dig(status, "affiliate", "registeredAt"),
            activated_at=extract_activated_at(status),
            total_earnings=to_float(dig(program, "affiliate", "totalEarnings")),
            total_paid=to_float(dig(program, "affiliate", "totalPaid")),
        )
        self.commit(
            {
                "profile": parse_profile(profile),
                "affiliate": affiliate,
                "invoice": extract_invoice(status) or InvoiceState(),
                "referral_program": program,
                "commission_breakdown": commissions,
                "loading": False,
                "is_initialized": True,
                **self._stamp(),
            }
        )
        logger.info(f"Affiliate snapshot refreshed (code={affiliate.affiliate_code})")

    # Targeted refreshes

    async def refresh_invoice(self) -> None:
        try:
            response = await self.source.refresh_invoice()
        except Exception as e:
            self._fail(e, "Failed to refresh invoice")
            raise

        invoice = extract_invoice(response)
        self.commit({**({"invoice": invoice} if invoice else {}), **self._stamp()})

    async def regenerate_invoice(self) -> None:
        try:
            response = await self.source.create_registration_invoice(self.settings.registration_fee)
        except Exception as e:
            self._fail(e, "Failed to regenerate invoice")
            raise

        invoice = extract_invoice(response, status_override=InvoiceStatus.PENDING)
        self.commit({**({"invoice": invoice} if invoice else {}), **self._stamp()})

    async def handle_payment(self) -> str:
        """Validate the invoice, kick off backend payment polling, return the pay URL."""
        try:
            response = await self.source.refresh_invoice()
            invoice = extract_invoice(response, status_override=InvoiceStatus.PENDING)
            if invoice is None or not invoice.invoice_url:
                raise PaymentError("No invoice URL received")
        except Exception as e:
            self._fail(e, "Failed to process payment")
            raise

        self.commit({"invoice": invoice, **self._stamp()})

        try:
            await self.source.start_payment_polling()
        except Exception as e:
            logger.warning(f"Could not start backend payment polling: {e}")

        return invoice.invoice_url

    async def refresh_referral_program(self) -> None:
        try:
            program = await self.source.fetch_referral_program()
        except Exception as e:
            self._fail(e, "Failed to refresh referral program")
            raise

        self.commit({"referral_program": program, **self._stamp()})

    async def refresh_commission_breakdown(self) -> None:
        try:
            commissions = await self.source.fetch_commission_breakdown(
                page=1, limit=self.settings.commission_breakdown_limit
            )
        except Exception as e:
            self._fail(e, "Failed to refresh commission breakdown")
            raise

        self.commit({"commission_breakdown": commissions, **self._stamp()})

    async def refresh_referral_hierarchy(self) -> None:
        """
        Fetch the referral tree, replacing any hierarchy request still pending.

        Only the newest request can commit. A replaced request returns
        quietly; a failed one records ``error`` and raises.
        """
        self.commit({"loading": True, "error": None})
        try:
            await self._hierarchy.run(self._fetch_hierarchy())
        except SupersededError:
            logger.debug("Referral hierarchy request superseded")

    async def _fetch_hierarchy(self) -> None:
        # Runs inside the superseder's task: commits even if the caller is gone.
        try:
            hierarchy = await self.source.fetch_referral_hierarchy()
        except Exception as e:
            self._fail(e, "Failed to refresh referral hierarchy", loading=False)
            raise

        self.commit(
            {
                "referral_hierarchy": hierarchy,
                "loading": False,
                "error": None,
                **self._stamp(),
            }
        )

    async def refresh_withdrawal(self) -> None:
        try:
            balance, history = await self._gather(
                "withdrawal",
                self.source.fetch_withdrawal_balance(),
                self.source.fetch_withdrawal_history(
                    page=1, limit=self.settings.withdrawal_history_limit, status="ALL"
                ),
            )
        except Exception as e:
            self._fail(e, "Failed to refresh withdrawal data")
            raise

        withdrawal = WithdrawalState(
            **parse_withdrawal_balance(balance).model_dump(),
            withdrawal_history=parse_withdrawal_history(history),
        )
        self.commit({"withdrawal": withdrawal, **self._stamp()})

    # Polling tier refreshes

    async def refresh_activation(self) -> None:
        """Fast tier: activation status, affiliate code and invoice."""
        try:
            status = await self.source.fetch_activation_status()
        except Exception as e:
            self._fail(e, "Failed to refresh activation status")
            raise

        code = extract_affiliate_code(status)
        activated_at = extract_activated_at(status)
        invoice = extract_invoice(status) or InvoiceState()

        self.commit(
            lambda current: {
                "affiliate": current.affiliate.model_copy(
                    update={
                        "is_active": bool(status.get("isActive")),
                        "affiliate_code": code or current.affiliate.affiliate_code,
                        "activated_at": activated_at or current.affiliate.activated_at,
                    }
                ),
                "invoice": invoice,
                **self._stamp(),
            }
        )

    async def refresh_program_and_balance(self) -> None:
        """Medium tier: program summary and withdrawal balance."""
        try:
            program, balance = await self._gather(
                "medium",
                self.source.fetch_referral_program(),
                self.source.fetch_withdrawal_balance(),
            )
        except Exception as e:
            self._fail(e, "Failed to refresh program and balance")
            raise

        total_earnings = to_float(dig(program, "affiliate", "totalEarnings"))
        total_paid = to_float(dig(program, "affiliate", "totalPaid"))
        balance_fields = parse_withdrawal_balance(balance).model_dump()

        self.commit(
            lambda current: {
                "affiliate": current.affiliate.model_copy(
                    update={
                        "total_earnings": total_earnings or current.affiliate.total_earnings,
                        "total_paid": total_paid or current.affiliate.total_paid,
                    }
                ),
                "referral_program": program,
                "withdrawal": current.withdrawal.model_copy(update=balance_fields),
                **self._stamp(),
            }
        )

    async def refresh_withdrawal_balance(self) -> None:
        """Medium tier on the withdrawal page: balance only."""
        try:
            balance = await self.source.fetch_withdrawal_balance()
        except Exception as e:
            self._fail(e, "Failed to refresh withdrawal balance")
            raise

        balance_fields = parse_withdrawal_balance(balance).model_dump()
        self.commit(
            lambda current: {
                "withdrawal": current.withdrawal.model_copy(update=balance_fields),
                **self._stamp(),
            }
        )

    async def refresh_commissions_and_history(self) -> None:
        """Heavy tier: latest commissions and withdrawal history."""
        try:
            commissions, history = await self._gather(
                "heavy",
                self.source.fetch_commission_breakdown(
                    page=1, limit=self.settings.heavy_commission_limit
                ),
                self.source.fetch_withdrawal_history(
                    page=1, limit=self.settings.withdrawal_history_limit, status="ALL"
                ),
            )
        except Exception as e:
            self._fail(e, "Failed to refresh commissions and withdrawal history")
            raise

        records = parse_withdrawal_history(history)
        self.commit(
            lambda current: {
                "commission_breakdown": commissions,
                "withdrawal": current.withdrawal.model_copy(
                    update={"withdrawal_history": records}
                ),
                **self._stamp(),
            }
        )

    async def aclose(self) -> None:
        """Let a pending hierarchy request land before shutdown."""
        await self._hierarchy.drain()
