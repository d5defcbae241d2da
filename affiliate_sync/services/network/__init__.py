from affiliate_sync.services.network.aggregation import (
    build_dashboard_stats,
    compute_total_omset,
    resolve_total_members,
    snapshot_network_metrics,
)
from affiliate_sync.services.network.hierarchy import (
    compute_network_metrics,
    network_metrics_from_payload,
)
from affiliate_sync.services.network.models import (
    CommissionLevelBucket,
    DerivedNetworkMetrics,
    ReferralNode,
    ReferralStatus,
)
from affiliate_sync.services.network.normalize import (
    extract_referral_tree,
    normalize_referrals,
    parse_commission_buckets,
)

__all__ = [
    "CommissionLevelBucket",
    "DerivedNetworkMetrics",
    "ReferralNode",
    "ReferralStatus",
    "build_dashboard_stats",
    "compute_network_metrics",
    "compute_total_omset",
    "extract_referral_tree",
    "network_metrics_from_payload",
    "normalize_referrals",
    "parse_commission_buckets",
    "resolve_total_members",
    "snapshot_network_metrics",
]
