from affiliate_sync.services.remote.client import (
    AffiliateApiClient,
    close_api_client,
    get_api_client,
)
from affiliate_sync.services.remote.source import RemoteDataSource

__all__ = [
    "AffiliateApiClient",
    "get_api_client",
    "close_api_client",
    "RemoteDataSource",
]
