from enum import Enum

from affiliate_sync.schemas.common import BaseSchema


class MemberCountSource(str, Enum):
    HIERARCHY = "hierarchy"
    SUMMARY_TOTAL = "summary_total_members"
    NETWORK_TOTAL = "network_total_members"
    LEVEL_RECONSTRUCTION = "level_reconstruction"
    REFERRAL_LIST = "referral_list"
    TOTAL_COUNT = "total_count"


class LevelBreakdown(BaseSchema):
    level: int
    count: int
    commission: float
    pending: float
    approved: float
    fixed_amount: float


class StatCard(BaseSchema):
    label: str
    value: str


class NetworkMetricsResponse(BaseSchema):
    members_per_level: dict[int, int]
    highest_downline_level: int
    total_member_count: int


class DashboardStats(BaseSchema):
    affiliate_code: str | None = None
    referral_link: str = ""
    total_omset: int
    level1_count: int
    approved_commission: float
    pending_commission: float
    total_commission: float
    pending_payment_persons: int
    total_members: int
    member_count_source: MemberCountSource | None = None
    members_per_level: dict[int, int]
    highest_downline_level: int
    user_level: int
    level_breakdown: list[LevelBreakdown]
    is_hierarchy_empty: bool
    stat_cards: list[StatCard]


class PollingStatusResponse(BaseSchema):
    running: bool
    page_context: str | None = None
    tiers: list[str]
    cache_ttl_seconds: float
    last_update: float | None = None
    is_stale: bool
