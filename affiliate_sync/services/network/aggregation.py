"""
Dashboard statistics from the cached snapshot.

Backend endpoints pre-aggregate inconsistently, so the member total is taken
from the first source in a fixed priority order that yields a positive value.
A source reporting exactly zero falls through to the next one, the same as a
missing field.
"""

import logging
from typing import Any

from affiliate_sync.config import Settings
from affiliate_sync.schemas.snapshot import AffiliateSnapshot
from affiliate_sync.schemas.stats import (
    DashboardStats,
    LevelBreakdown,
    MemberCountSource,
    StatCard,
)
from affiliate_sync.services.network.hierarchy import compute_network_metrics
from affiliate_sync.services.network.models import CommissionLevelBucket, DerivedNetworkMetrics
from affiliate_sync.services.network.normalize import (
    extract_referral_tree,
    normalize_referrals,
    parse_commission_buckets,
)
from affiliate_sync.utils.coerce import as_dict, dig, first_truthy, is_number, to_count, to_float
from affiliate_sync.utils.helpers import build_referral_link, format_currency, format_number

logger = logging.getLogger(__name__)


def _positive(value: Any) -> int | None:
    if is_number(value) and value > 0:
        return int(value)
    return None


def direct_referrals(snapshot: AffiliateSnapshot) -> list[Any] | None:
    """``referralProgram.referrals.list``; None when the backend sent no list."""
    referrals = dig(snapshot.referral_program, "referrals")
    if isinstance(referrals, dict) and isinstance(referrals.get("list"), list):
        return referrals["list"]
    return None


def referral_total_count(snapshot: AffiliateSnapshot) -> int:
    return to_count(dig(snapshot.referral_program, "referrals", "totalCount"))


def commission_buckets(
    snapshot: AffiliateSnapshot,
    max_level: int = 10,
) -> dict[int, CommissionLevelBucket]:
    """Per-level buckets from the breakdown endpoint, else from the program dashboard."""
    by_level = dig(snapshot.commission_breakdown, "byLevel")
    if not as_dict(by_level):
        by_level = dig(snapshot.referral_program, "commissionBreakdown", "byLevel")
    return parse_commission_buckets(by_level, max_level=max_level)


def snapshot_network_metrics(
    snapshot: AffiliateSnapshot,
    max_depth: int = 1000,
) -> DerivedNetworkMetrics:
    """Traversal of the cached hierarchy, or of the program's referrals when it is empty."""
    tree = extract_referral_tree(snapshot.referral_hierarchy)
    if not tree:
        tree = extract_referral_tree(snapshot.referral_program)
    return compute_network_metrics(normalize_referrals(tree, max_depth=max_depth), max_depth=max_depth)


def _total_from_referral_list(referrals: list[Any]) -> int:
    total = len(referrals)
    for ref in referrals:
        ref = as_dict(ref)
        if is_number(ref.get("networkMembersCount")):
            total += to_count(ref["networkMembersCount"])
        elif is_number(ref.get("subReferralsCount")):
            total += to_count(ref["subReferralsCount"])
    return total


def resolve_total_members(
    snapshot: AffiliateSnapshot,
    metrics: DerivedNetworkMetrics,
    buckets: dict[int, CommissionLevelBucket],
) -> tuple[int, MemberCountSource | None]:
    total = sum(metrics.members_per_level.values())
    if total > 0:
        return total, MemberCountSource.HIERARCHY

    summary = dig(snapshot.referral_program, "summary")
    network = dig(snapshot.referral_program, "network")

    value = _positive(dig(summary, "totalMembers"))
    if value:
        return value, MemberCountSource.SUMMARY_TOTAL

    value = _positive(dig(network, "totalNetworkMembers")) or _positive(
        dig(summary, "totalNetworkMembers")
    )
    if value:
        return value, MemberCountSource.NETWORK_TOTAL

    referrals = direct_referrals(snapshot)
    level1_count = len(referrals) if referrals is not None else referral_total_count(snapshot)
    total = level1_count + sum(
        bucket.count for level, bucket in buckets.items() if level >= 2
    )
    if total > 0:
        return total, MemberCountSource.LEVEL_RECONSTRUCTION

    if referrals:
        total = _total_from_referral_list(referrals)
        if total > 0:
            return total, MemberCountSource.REFERRAL_LIST

    total = referral_total_count(snapshot)
    return total, MemberCountSource.TOTAL_COUNT if total else None


def resolve_members_per_level(
    snapshot: AffiliateSnapshot,
    metrics: DerivedNetworkMetrics,
    buckets: dict[int, CommissionLevelBucket],
) -> dict[int, int]:
    if metrics.members_per_level:
        return dict(metrics.members_per_level)

    referrals = direct_referrals(snapshot)
    counts = {1: len(referrals) if referrals is not None else referral_total_count(snapshot)}
    for level, bucket in buckets.items():
        if level >= 2:
            counts[level] = bucket.count
    return {level: count for level, count in counts.items() if count > 0}


def resolve_level1_count(
    snapshot: AffiliateSnapshot,
    buckets: dict[int, CommissionLevelBucket],
) -> int:
    referrals = direct_referrals(snapshot)
    if referrals is not None:
        return len(referrals)
    bucket = buckets.get(1)
    return bucket.count if bucket else 0


def compute_total_omset(level1_count: int, product_price: int) -> int:
    return level1_count * product_price


def build_dashboard_stats(snapshot: AffiliateSnapshot, settings: Settings) -> DashboardStats:
    program = snapshot.referral_program
    totals = as_dict(dig(program, "totals"))
    earnings = as_dict(
        first_truthy(dig(program, "earnings"), dig(snapshot.referral_hierarchy, "earnings"))
    )

    buckets = commission_buckets(snapshot, max_level=settings.max_commission_level)
    metrics = snapshot_network_metrics(snapshot, max_depth=settings.max_traversal_depth)
    total_members, source = resolve_total_members(snapshot, metrics, buckets)
    level1_count = resolve_level1_count(snapshot, buckets)
    total_omset = compute_total_omset(level1_count, settings.product_price)

    approved = totals.get("approvedCommission")
    approved_commission = float(approved) if is_number(approved) else to_float(earnings.get("approved"))

    pending_persons = totals.get("pendingPaymentPersons")
    pending_payment_persons = (
        to_count(pending_persons)
        if is_number(pending_persons)
        else to_count(dig(program, "commissionDetails", "pending_payment_class"))
    )

    affiliate_code = snapshot.affiliate.affiliate_code or dig(program, "affiliate", "code")
    loaded = program is not None or snapshot.commission_breakdown is not None

    stats = DashboardStats(
        affiliate_code=affiliate_code,
        referral_link=build_referral_link(settings.referral_link_base, affiliate_code),
        total_omset=total_omset,
        level1_count=level1_count,
        approved_commission=approved_commission,
        pending_commission=to_float(earnings.get("pending")),
        total_commission=to_float(earnings.get("total")),
        pending_payment_persons=pending_payment_persons,
        total_members=total_members,
        member_count_source=source,
        members_per_level=resolve_members_per_level(snapshot, metrics, buckets),
        highest_downline_level=metrics.highest_downline_level,
        user_level=max(1, metrics.highest_downline_level),
        level_breakdown=[
            LevelBreakdown(
                level=bucket.level,
                count=bucket.count,
                commission=bucket.total,
                pending=bucket.pending,
                approved=bucket.approved,
                fixed_amount=bucket.fixed_amount,
            )
            for bucket in buckets.values()
        ],
        is_hierarchy_empty=loaded and all(bucket.count == 0 for bucket in buckets.values()),
        stat_cards=[
            StatCard(label="Total Omset", value=format_currency(total_omset)),
            StatCard(label="Approve Commission", value=format_currency(approved_commission)),
            StatCard(label="Pending Payment Person", value=format_number(pending_payment_persons)),
            StatCard(label="Total Member", value=format_number(total_members)),
        ],
    )

    logger.debug(
        f"Dashboard stats: members={total_members} (source={source}), "
        f"omset={total_omset}, highest_level={metrics.highest_downline_level}"
    )
    return stats
