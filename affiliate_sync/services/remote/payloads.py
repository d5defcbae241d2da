"""
Parsers for backend JSON payloads into snapshot parts.

Every field read goes through the coerce helpers, so a malformed payload
yields defaults rather than an exception.
"""

import copy
from typing import Any

from affiliate_sync.schemas.snapshot import (
    InvoiceState,
    InvoiceStatus,
    ProfileState,
    WithdrawalBalance,
    WithdrawalRecord,
)
from affiliate_sync.utils.coerce import as_dict, as_list, dig, first_truthy, is_number, to_float

_PAID_STATUSES = {"COMPLETED", "PAID"}


def parse_profile(user: Any) -> ProfileState:
    user = as_dict(user)
    return ProfileState(
        user_id=_optional_str(user.get("id")),
        email=user.get("email"),
        full_name=user.get("fullName"),
        phone=user.get("phone"),
        created_at=user.get("createdAt"),
        updated_at=user.get("updatedAt"),
    )


def extract_affiliate_code(status: Any) -> str | None:
    return first_truthy(
        dig(status, "earnInfo", "affiliateCode"),
        dig(status, "affiliate", "affiliateCode"),
        dig(status, "affiliateCode"),
    )


def extract_activated_at(status: Any) -> str | None:
    return first_truthy(
        dig(status, "affiliate", "activatedAt"),
        dig(status, "earnInfo", "activatedAt"),
        dig(status, "activatedAt"),
    )


def extract_invoice(payload: Any, status_override: InvoiceStatus | None = None) -> InvoiceState | None:
    """Invoice from the ``payment`` or ``invoice`` sub-object; None when neither is present."""
    data = as_dict(first_truthy(dig(payload, "payment"), dig(payload, "invoice")))
    if not data:
        return None

    raw_status = str(data.get("status") or "").upper()
    if status_override is not None:
        status = status_override
    elif raw_status in _PAID_STATUSES:
        status = InvoiceStatus.PAID
    elif raw_status == "EXPIRED":
        status = InvoiceStatus.EXPIRED
    else:
        status = InvoiceStatus.PENDING

    amount = data.get("amount")
    return InvoiceState(
        id=_optional_str(data.get("id")),
        amount=float(amount) if is_number(amount) else None,
        status=status,
        invoice_url=data.get("invoiceUrl") or "",
        expired_at=data.get("expiredAt") or "",
    )


def parse_withdrawal_balance(balance: Any) -> WithdrawalBalance:
    balance = as_dict(balance)
    return WithdrawalBalance(
        available_balance=to_float(balance.get("availableForWithdrawal")),
        pending_withdrawal=to_float(balance.get("pendingWithdrawal")),
        total_paid=to_float(balance.get("completedWithdrawal")),
        total_earned=to_float(balance.get("totalEarned")),
        in_wallet=to_float(balance.get("inWallet")),
    )


def parse_withdrawal_history(withdrawals: Any) -> tuple[WithdrawalRecord, ...]:
    records = []
    for item in as_list(withdrawals):
        item = as_dict(item)
        if not item:
            continue
        records.append(
            WithdrawalRecord(
                id=str(item.get("id") or ""),
                amount=to_float(item.get("amount")),
                status=str(item.get("status") or "PENDING").upper(),
                bank_name=item.get("bankName") or "",
                account_number_masked=item.get("accountNumberMasked"),
                account_holder=item.get("accountHolder"),
                created_at=item.get("createdAt"),
                updated_at=item.get("updatedAt"),
            )
        )
    return tuple(records)


def normalize_program_totals(data: Any) -> dict[str, Any]:
    """
    Fold the dashboard's ``totals`` block into the program shape.

    ``totals.ownerCode`` becomes ``affiliate.code``, a numeric
    ``totals.totalMembers`` becomes ``summary.totalMembers`` and a non-empty
    ``totals.qualifyingUsers`` replaces ``referrals.list``.
    """
    program = copy.deepcopy(as_dict(data))
    totals = as_dict(program.get("totals"))

    if totals.get("ownerCode"):
        program["affiliate"] = {**as_dict(program.get("affiliate")), "code": totals["ownerCode"]}

    if is_number(totals.get("totalMembers")):
        program["summary"] = {
            **as_dict(program.get("summary")),
            "totalMembers": totals["totalMembers"],
        }

    qualifying = as_list(totals.get("qualifyingUsers"))
    if qualifying:
        referrals = as_dict(program.get("referrals"))
        referrals["list"] = [
            {
                "id": user.get("id"),
                "code": user.get("code"),
                "user": {"fullName": user.get("fullName"), "email": user.get("email")},
                "payments": user.get("payments") or [],
                "purchases": user.get("purchases") or [],
                "status": user.get("status") or "UNKNOWN",
                "registeredAt": user.get("registeredAt"),
            }
            for user in map(as_dict, qualifying)
        ]
        referrals["totalCount"] = len(referrals["list"])
        program["referrals"] = referrals

    return program


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)
