from enum import Enum
from typing import Any

from pydantic import ConfigDict, Field

from affiliate_sync.schemas.common import BaseSchema


class InvoiceStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    EXPIRED = "EXPIRED"


class PageContext(str, Enum):
    DASHBOARD = "dashboard"
    REFERRAL = "referral"
    WITHDRAWAL = "withdrawal"
    COMMISSION = "commission"


class SnapshotPart(BaseSchema):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
        frozen=True,
    )


class ProfileState(SnapshotPart):
    user_id: str | None = None
    email: str | None = None
    full_name: str | None = None
    phone: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class AffiliateState(SnapshotPart):
    is_active: bool = False
    affiliate_code: str | None = None
    registered_at: str | None = None
    activated_at: str | None = None
    total_earnings: float = 0.0
    total_paid: float = 0.0


class InvoiceState(SnapshotPart):
    id: str | None = None
    amount: float | None = None
    status: InvoiceStatus | None = None
    invoice_url: str = ""
    expired_at: str = ""


class WithdrawalRecord(SnapshotPart):
    id: str
    amount: float = 0.0
    status: str = "PENDING"
    bank_name: str = ""
    account_number_masked: str | None = None
    account_holder: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class WithdrawalBalance(SnapshotPart):
    available_balance: float = 0.0
    pending_withdrawal: float = 0.0
    total_paid: float = 0.0
    total_earned: float = 0.0
    in_wallet: float = 0.0


class WithdrawalState(WithdrawalBalance):
    withdrawal_history: tuple[WithdrawalRecord, ...] = ()


class AffiliateSnapshot(SnapshotPart):
    """
    Last-known-good view of the affiliate account.

    Each refresh commits a new snapshot built with ``model_copy(update=...)``,
    so readers only ever hold a complete object. ``last_update`` is the only
    staleness signal and is stamped by every successful refresh.
    """

    profile: ProfileState | None = None
    affiliate: AffiliateState = Field(default_factory=AffiliateState)
    invoice: InvoiceState = Field(default_factory=InvoiceState)
    referral_program: dict[str, Any] | None = None
    commission_breakdown: dict[str, Any] | None = None
    referral_hierarchy: dict[str, Any] | None = None
    withdrawal: WithdrawalState = Field(default_factory=WithdrawalState)
    loading: bool = False
    error: str | None = None
    is_initialized: bool = False
    last_update: float | None = None


class PaymentResponse(BaseSchema):
    success: bool = True
    invoice_url: str
