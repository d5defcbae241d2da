import logging
import time
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from affiliate_sync.config import Settings, settings as default_settings
from affiliate_sync.core.exceptions import BackendError, TransportError

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 3.0


class AffiliateApiClient:
    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or default_settings
        self.base_url = self.settings.api_base_url
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers = {"Content-Type": "application/json"}
            if self.settings.api_token:
                headers["Authorization"] = f"Bearer {self.settings.api_token}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.settings.request_timeout_seconds,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        retrying = retry(
            stop=stop_after_attempt(self.settings.request_retry_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(TransportError),
            reraise=True,
        )
        return await retrying(self._send)(method, endpoint, params, data)

    async def _send(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None,
        data: dict[str, Any] | None,
    ) -> Any:
        client = await self.get_client()
        started = time.monotonic()

        try:
            if method.upper() == "POST":
                response = await client.post(endpoint, params=params, json=data or {})
            else:
                response = await client.get(endpoint, params=params)

            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as e:
            logger.error(f"Backend API error: {e.response.status_code} - {e.response.text}")
            raise BackendError(
                _error_message(e.response, f"API request failed: {e.response.status_code}"),
                upstream_status=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Backend request error: {str(e)}")
            raise TransportError(f"Request failed: {str(e)}") from e
        except ValueError as e:
            logger.error(f"Backend returned invalid JSON for {endpoint}: {str(e)}")
            raise BackendError(f"Invalid response from {endpoint}") from e
        finally:
            duration = time.monotonic() - started
            if duration > SLOW_REQUEST_SECONDS:
                logger.warning(f"{method.upper()} {endpoint} took {duration * 1000:.0f}ms")

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        return await self._request("GET", endpoint, params=params)

    async def post(self, endpoint: str, data: dict[str, Any] | None = None) -> Any:
        return await self._request("POST", endpoint, data=data)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return default


_client_instance: AffiliateApiClient | None = None


def get_api_client() -> AffiliateApiClient:
    global _client_instance
    if _client_instance is None:
        _client_instance = AffiliateApiClient()
    return _client_instance


async def close_api_client():
    global _client_instance
    if _client_instance:
        await _client_instance.close()
        _client_instance = None
