from affiliate_sync.config import Settings
from affiliate_sync.schemas.snapshot import AffiliateSnapshot, AffiliateState
from affiliate_sync.schemas.stats import MemberCountSource
from affiliate_sync.services.network import (
    build_dashboard_stats,
    compute_total_omset,
    resolve_total_members,
    snapshot_network_metrics,
)
from affiliate_sync.services.network.aggregation import (
    commission_buckets,
    resolve_level1_count,
    resolve_members_per_level,
)


def _settings() -> Settings:
    return Settings(product_price=575000, referral_link_base="https://santa.cloud/register")


def _total(snapshot: AffiliateSnapshot) -> tuple[int, MemberCountSource | None]:
    buckets = commission_buckets(snapshot)
    return resolve_total_members(snapshot, snapshot_network_metrics(snapshot), buckets)


def test_hierarchy_wins_when_positive():
    snapshot = AffiliateSnapshot(
        referral_hierarchy={"referrals": [{"id": "a", "subReferrals": [{"id": "b"}]}]},
        referral_program={"summary": {"totalMembers": 42}},
    )

    assert _total(snapshot) == (2, MemberCountSource.HIERARCHY)


def test_program_referrals_used_when_hierarchy_empty():
    snapshot = AffiliateSnapshot(
        referral_hierarchy={"referrals": []},
        referral_program={"referrals": {"list": [{"id": "a"}, {"id": "b"}]}},
    )

    assert _total(snapshot) == (2, MemberCountSource.HIERARCHY)


def test_summary_total_when_traversal_yields_zero():
    snapshot = AffiliateSnapshot(
        referral_hierarchy={"referrals": []},
        referral_program={"summary": {"totalMembers": 42}},
    )

    assert _total(snapshot) == (42, MemberCountSource.SUMMARY_TOTAL)


def test_network_total_fallbacks():
    network = AffiliateSnapshot(
        referral_program={"summary": {"totalMembers": 0}, "network": {"totalNetworkMembers": 17}}
    )
    summary = AffiliateSnapshot(referral_program={"summary": {"totalNetworkMembers": 9}})

    assert _total(network) == (17, MemberCountSource.NETWORK_TOTAL)
    assert _total(summary) == (9, MemberCountSource.NETWORK_TOTAL)


def test_level_reconstruction_from_breakdown():
    snapshot = AffiliateSnapshot(
        referral_program={"referrals": {"totalCount": 4}},
        commission_breakdown={
            "byLevel": {
                "level_1": {"count": 99},
                "level_2": {"count": 5},
                "level_3": {"count": 1},
            }
        },
    )

    assert _total(snapshot) == (10, MemberCountSource.LEVEL_RECONSTRUCTION)
    assert resolve_members_per_level(
        snapshot, snapshot_network_metrics(snapshot), commission_buckets(snapshot)
    ) == {1: 4, 2: 5, 3: 1}


def test_breakdown_falls_back_to_program_buckets():
    snapshot = AffiliateSnapshot(
        referral_program={"commissionBreakdown": {"byLevel": {"level_2": {"count": 3}}}},
    )

    assert _total(snapshot) == (3, MemberCountSource.LEVEL_RECONSTRUCTION)


def test_nothing_loaded_is_zero():
    assert _total(AffiliateSnapshot()) == (0, None)


def test_zero_reports_fall_through():
    snapshot = AffiliateSnapshot(
        referral_hierarchy={"referrals": []},
        referral_program={
            "summary": {"totalMembers": 0, "totalNetworkMembers": 0},
            "network": {"totalNetworkMembers": 0},
            "referrals": {"totalCount": 2},
        },
    )

    assert _total(snapshot) == (2, MemberCountSource.LEVEL_RECONSTRUCTION)


def test_omset_from_direct_referrals():
    snapshot = AffiliateSnapshot(
        referral_program={
            "referrals": {"list": [{"id": "a"}, {"id": "b"}, {"id": "c"}]},
            "totals": {"totalOmset": 1},
        },
    )

    stats = build_dashboard_stats(snapshot, _settings())

    assert stats.level1_count == 3
    assert stats.total_omset == 1725000
    assert compute_total_omset(3, 575000) == 1725000


def test_level1_falls_back_to_breakdown_bucket():
    snapshot = AffiliateSnapshot(
        commission_breakdown={"byLevel": {"level_1": {"count": 2}}},
    )

    assert resolve_level1_count(snapshot, commission_buckets(snapshot)) == 2


def test_dashboard_stats():
    snapshot = AffiliateSnapshot(
        affiliate=AffiliateState(is_active=True, affiliate_code="ANA123"),
        referral_program={
            "referrals": {"list": [{"id": "a", "subReferrals": [{"id": "b"}]}]},
            "totals": {"approvedCommission": 125000, "pendingPaymentPersons": 2},
            "earnings": {"total": 300000, "pending": 50000, "approved": 1},
        },
        commission_breakdown={
            "byLevel": {"level_1": {"count": 1, "total": 100000}, "level_2": {"count": 1}}
        },
    )

    stats = build_dashboard_stats(snapshot, _settings())

    assert stats.affiliate_code == "ANA123"
    assert stats.referral_link == "https://santa.cloud/register?ref=ANA123"
    assert stats.approved_commission == 125000
    assert stats.pending_commission == 50000
    assert stats.total_commission == 300000
    assert stats.pending_payment_persons == 2
    assert stats.total_members == 2
    assert stats.member_count_source == MemberCountSource.HIERARCHY.value
    assert stats.members_per_level == {1: 1, 2: 1}
    assert stats.highest_downline_level == 2
    assert stats.user_level == 2
    assert len(stats.level_breakdown) == 10
    assert stats.level_breakdown[0].commission == 100000
    assert stats.is_hierarchy_empty is False
    assert [card.value for card in stats.stat_cards] == ["Rp 575.000", "Rp 125.000", "2", "2"]


def test_dashboard_stats_without_data():
    stats = build_dashboard_stats(AffiliateSnapshot(), _settings())

    assert stats.total_members == 0
    assert stats.member_count_source is None
    assert stats.user_level == 1
    assert stats.referral_link == ""
    assert stats.is_hierarchy_empty is False


def test_hierarchy_empty_when_loaded_without_members():
    snapshot = AffiliateSnapshot(
        referral_program={"referrals": {"list": []}},
        commission_breakdown={"byLevel": {}},
    )

    stats = build_dashboard_stats(snapshot, _settings())

    assert stats.is_hierarchy_empty is True
    assert stats.approved_commission == 0


def test_affiliate_code_from_program():
    snapshot = AffiliateSnapshot(referral_program={"affiliate": {"code": "OWN1"}})

    assert build_dashboard_stats(snapshot, _settings()).affiliate_code == "OWN1"
