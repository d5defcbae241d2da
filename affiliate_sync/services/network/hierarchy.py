import logging
from collections.abc import Sequence
from typing import Any

from affiliate_sync.services.network.models import DerivedNetworkMetrics, ReferralNode
from affiliate_sync.services.network.normalize import (
    DEFAULT_MAX_DEPTH,
    extract_referral_tree,
    normalize_referrals,
)

logger = logging.getLogger(__name__)


def compute_network_metrics(
    roots: Sequence[ReferralNode],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> DerivedNetworkMetrics:
    """
    Per-level member counts, deepest level and network size of a downline.

    The root's direct children sit at level 1. A node's own ``level`` wins
    over its position; nodes without one take their parent's effective level
    plus one. Depth-first, on an explicit stack, never descending more than
    ``max_depth`` hops. Anything that is not a ReferralNode is ignored.
    """
    members_per_level: dict[int, int] = {}
    highest_level = 0

    if not isinstance(roots, Sequence):
        return DerivedNetworkMetrics()

    stack: list[tuple[Any, int, int]] = [(node, 1, 1) for node in reversed(roots)]
    while stack:
        node, inherited_level, hops = stack.pop()
        if not isinstance(node, ReferralNode):
            continue

        level = node.level or inherited_level
        members_per_level[level] = members_per_level.get(level, 0) + 1
        highest_level = max(highest_level, level)

        if hops >= max_depth:
            continue
        for child in reversed(node.children):
            stack.append((child, level + 1, hops + 1))

    return DerivedNetworkMetrics(
        members_per_level=dict(sorted(members_per_level.items())),
        highest_downline_level=highest_level,
        total_member_count=sum(members_per_level.values()),
    )


def network_metrics_from_payload(
    payload: Any,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> DerivedNetworkMetrics:
    """Metrics straight from a raw hierarchy payload, list, or ``{"list": [...]}``."""
    roots = normalize_referrals(extract_referral_tree(payload), max_depth=max_depth)
    return compute_network_metrics(roots, max_depth=max_depth)
