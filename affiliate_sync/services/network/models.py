from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ReferralStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"


@dataclass
class ReferralNode:
    """One member of the downline tree, in canonical shape."""

    id: str
    code: str = ""
    name: str = ""
    email: str = ""
    status: ReferralStatus = ReferralStatus.PENDING
    join_date: str | None = None
    level: int | None = None  # server-supplied depth hint, authoritative when set
    total_earnings: float = 0.0
    pending_earnings: float = 0.0
    approved_earnings: float = 0.0
    network_members_count: int | None = None
    sub_referrals_count: int | None = None
    children: list["ReferralNode"] = field(default_factory=list)


@dataclass
class CommissionLevelBucket:
    level: int
    count: int = 0
    total: float = 0.0
    pending: float = 0.0
    approved: float = 0.0
    fixed_amount: float = 0.0


@dataclass
class DerivedNetworkMetrics:
    members_per_level: dict[int, int] = field(default_factory=dict)
    highest_downline_level: int = 0
    total_member_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "members_per_level": dict(self.members_per_level),
            "highest_downline_level": self.highest_downline_level,
            "total_member_count": self.total_member_count,
        }
