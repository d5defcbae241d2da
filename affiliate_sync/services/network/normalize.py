"""
Translation of backend referral payloads into canonical ReferralNode trees.

Endpoints disagree on where a member's children live: ``subReferrals``,
``referrals``, or a ``{"list": [...]}`` wrapper around either. All of that is
resolved here so the traversal engine only ever sees ``ReferralNode.children``.
"""

import logging
from collections.abc import Mapping
from typing import Any

from affiliate_sync.services.network.models import (
    CommissionLevelBucket,
    ReferralNode,
    ReferralStatus,
)
from affiliate_sync.utils.coerce import (
    as_dict,
    as_list,
    first_truthy,
    is_number,
    parse_level,
    to_count,
    to_float,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 1000

# Checked in order; the first non-empty one wins.
CHILDREN_KEYS = ("subReferrals", "referrals", "children")


def unwrap_referral_list(value: Any) -> list[Any]:
    if isinstance(value, Mapping):
        return as_list(value.get("list"))
    return as_list(value)


def extract_referral_tree(payload: Any) -> list[Any]:
    """Top-level referral items of a hierarchy/program payload (or a bare list)."""
    if isinstance(payload, Mapping) and "referrals" in payload:
        return unwrap_referral_list(payload["referrals"])
    return unwrap_referral_list(payload)


def _children_of(item: Mapping) -> list[Any]:
    for key in CHILDREN_KEYS:
        children = unwrap_referral_list(item.get(key))
        if children:
            return children
    return []


def _parse_status(value: Any) -> ReferralStatus:
    try:
        return ReferralStatus(str(value).upper())
    except ValueError:
        return ReferralStatus.PENDING


def _optional_count(value: Any) -> int | None:
    return to_count(value) if is_number(value) else None


def build_node(item: Mapping) -> ReferralNode:
    """Canonical node for one raw item, without its children."""
    user = as_dict(item.get("user"))
    return ReferralNode(
        id=str(first_truthy(item.get("id"), item.get("code"), default="")),
        code=str(item.get("code") or ""),
        name=str(first_truthy(item.get("name"), user.get("fullName"), default="")),
        email=str(first_truthy(item.get("email"), user.get("email"), default="")),
        status=_parse_status(item.get("status")),
        join_date=first_truthy(item.get("joinDate"), item.get("registeredAt")),
        level=parse_level(item.get("level")),
        total_earnings=to_float(item.get("totalEarnings")),
        pending_earnings=to_float(item.get("pendingEarnings")),
        approved_earnings=to_float(item.get("approvedEarnings")),
        network_members_count=_optional_count(item.get("networkMembersCount")),
        sub_referrals_count=_optional_count(
            first_truthy(item.get("subReferralsCount"), item.get("subReferralCount"))
        ),
    )


def normalize_referrals(raw: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> list[ReferralNode]:
    """
    Convert a raw referral list (or ``{"list": [...]}`` wrapper) into nodes.

    Iterative so deep trees never hit the interpreter recursion limit. A raw
    item reached a second time is skipped, and nothing deeper than
    ``max_depth`` hops below the root is descended into.
    """
    roots: list[ReferralNode] = []
    seen: set[int] = set()
    truncated = 0

    stack: list[tuple[Any, list[ReferralNode], int]] = [
        (item, roots, 1) for item in reversed(unwrap_referral_list(raw))
    ]
    while stack:
        item, siblings, depth = stack.pop()
        if not isinstance(item, Mapping) or id(item) in seen:
            continue
        seen.add(id(item))

        node = build_node(item)
        siblings.append(node)

        children = _children_of(item)
        if not children:
            continue
        if depth >= max_depth:
            truncated += 1
            continue
        for child in reversed(children):
            stack.append((child, node.children, depth + 1))

    if truncated:
        logger.warning(
            f"Referral tree deeper than {max_depth} levels, {truncated} subtrees dropped"
        )
    return roots


def parse_commission_buckets(by_level: Any, max_level: int = 10) -> dict[int, CommissionLevelBucket]:
    """``{"level_N": {...}}`` -> buckets for levels 1..max_level; absent keys are zero."""
    raw = as_dict(by_level)
    buckets: dict[int, CommissionLevelBucket] = {}
    for level in range(1, max_level + 1):
        data = as_dict(raw.get(f"level_{level}"))
        buckets[level] = CommissionLevelBucket(
            level=level,
            count=to_count(data.get("count")),
            total=to_float(first_truthy(data.get("total"), data.get("commission"))),
            pending=to_float(data.get("pending")),
            approved=to_float(data.get("approved")),
            fixed_amount=to_float(first_truthy(data.get("fixedAmount"), data.get("fixed_amount"))),
        )
    return buckets
