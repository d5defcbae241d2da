"""
Utility modules for AffiliateSync.
"""

from affiliate_sync.utils.coerce import (
    as_dict,
    as_list,
    dig,
    first_truthy,
    is_number,
    parse_level,
    to_count,
    to_float,
    to_int,
)
from affiliate_sync.utils.helpers import (
    build_referral_link,
    format_currency,
    format_number,
    utc_now,
)

__all__ = [
    # Coercion
    "as_dict",
    "as_list",
    "dig",
    "first_truthy",
    "is_number",
    "parse_level",
    "to_count",
    "to_float",
    "to_int",
    # Helpers
    "build_referral_link",
    "format_currency",
    "format_number",
    "utc_now",
]
