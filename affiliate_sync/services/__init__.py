from affiliate_sync.services.scheduler import PollingScheduler, PollingTier
from affiliate_sync.services.store import AffiliateStore
from affiliate_sync.services.superseder import RequestSuperseder

__all__ = [
    "AffiliateStore",
    "PollingScheduler",
    "PollingTier",
    "RequestSuperseder",
]
