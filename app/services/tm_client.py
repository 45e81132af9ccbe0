"""
Tekmetric API Client

Handles all HTTP requests to the Tekmetric public API.
Exchanges OAuth client credentials for a bearer token and caches it.
"""

import os
import asyncio
import base64
import logging
import httpx
from typing import Optional, Dict, Any

from app.services.token_cache import TokenCache, DEFAULT_TOKEN_TTL_SECONDS

logger = logging.getLogger(__name__)


class TekmetricConfigError(Exception):
    """Required Tekmetric settings are missing"""


class TekmetricAuthError(Exception):
    """OAuth token exchange failed"""


class TekmetricAPIError(Exception):
    """Tekmetric returned a non-success response"""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class TekmetricClient:
    """Client for Tekmetric API requests"""

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        token_cache: Optional[TokenCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.client_id = client_id or os.getenv("TEKMETRIC_CLIENT_ID")
        self.client_secret = client_secret or os.getenv("TEKMETRIC_CLIENT_SECRET")
        self.base_url = (base_url or os.getenv("TEKMETRIC_BASE_URL") or "").rstrip("/")
        self.timeout = float(os.getenv("TM_TIMEOUT_SECONDS", "30"))

        ttl = float(os.getenv("TEKMETRIC_TOKEN_TTL_SECONDS", DEFAULT_TOKEN_TTL_SECONDS))
        self.token_cache = token_cache or TokenCache(ttl_seconds=ttl)

        # Tests pass an httpx.MockTransport here
        self._transport = transport
        self._token_lock = asyncio.Lock()

    def missing_settings(self) -> list:
        """Names of required settings that are not configured"""
        settings = {
            "TEKMETRIC_CLIENT_ID": self.client_id,
            "TEKMETRIC_CLIENT_SECRET": self.client_secret,
            "TEKMETRIC_BASE_URL": self.base_url,
        }
        return [name for name, value in settings.items() if not value]

    def is_configured(self) -> bool:
        return not self.missing_settings()

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def get_access_token(self, force_refresh: bool = False) -> str:
        """Return a cached bearer token, exchanging credentials when needed"""
        missing = self.missing_settings()
        if missing:
            raise TekmetricConfigError(f"Missing Tekmetric settings: {', '.join(missing)}")

        if not force_refresh:
            token = self.token_cache.get()
            if token:
                return token

        async with self._token_lock:
            # Another request may have refreshed while we waited
            token = None if force_refresh else self.token_cache.get()
            if token:
                return token

            credentials = base64.b64encode(
                f"{self.client_id}:{self.client_secret}".encode()
            ).decode()

            async with self._http() as client:
                response = await client.post(
                    f"{self.base_url}/api/v1/oauth/token",
                    headers={
                        "Authorization": f"Basic {credentials}",
                        "Content-Type": "application/x-www-form-urlencoded"
                    },
                    content="grant_type=client_credentials"
                )

            if response.status_code >= 400:
                raise TekmetricAuthError(f"Tekmetric auth failed: {response.text}")

            token = response.json().get("access_token")
            if not token:
                raise TekmetricAuthError("Tekmetric auth failed: no access_token in response")

            self.token_cache.set(token)
            logger.info(f"[TM Client] Access token refreshed (valid {self.token_cache.ttl_seconds:.0f}s)")
            return token

    async def _get_headers(self) -> Dict[str, str]:
        """Get default headers for TM API requests"""
        token = await self.get_access_token()
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "accept": "application/json"
        }

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.status_code >= 400:
            logger.warning(
                f"[TM Client] {response.request.method} {response.request.url.path} "
                f"-> {response.status_code}"
            )
            raise TekmetricAPIError(response.status_code, response.text or response.reason_phrase)

    async def get(self, path: str, params: Optional[Dict] = None) -> Any:
        """Make GET request to TM API"""
        headers = await self._get_headers()
        url = f"{self.base_url}{path}"

        async with self._http() as client:
            response = await client.get(url, headers=headers, params=params)
            self._raise_for_status(response)
            return response.json()

    async def post(self, path: str, data: Dict) -> Any:
        """Make POST request to TM API"""
        headers = await self._get_headers()
        url = f"{self.base_url}{path}"

        async with self._http() as client:
            response = await client.post(url, headers=headers, json=data)
            self._raise_for_status(response)
            return response.json()


# Singleton instance
_tm_client: Optional[TekmetricClient] = None


def get_tm_client() -> TekmetricClient:
    """Get or create TM client instance"""
    global _tm_client
    if _tm_client is None:
        _tm_client = TekmetricClient()
    return _tm_client
