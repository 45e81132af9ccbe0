"""
Token Cache

In-memory bearer token cache with an explicit expiry.
Injected into TekmetricClient so it can be tested without real OAuth calls.
"""

import time
from typing import Callable, Optional


# Tekmetric tokens are issued for an hour; refresh 5 minutes early
DEFAULT_TOKEN_TTL_SECONDS = 55 * 60


class TokenCache:
    """Holds a single access token until it expires"""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at: float = 0.0

    def get(self) -> Optional[str]:
        """Return the cached token, or None if missing or expired"""
        if self._token and self._clock() < self._expires_at:
            return self._token
        return None

    def set(self, token: str, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._token = token
        self._expires_at = self._clock() + ttl

    def clear(self) -> None:
        self._token = None
        self._expires_at = 0.0

    @property
    def expires_in(self) -> float:
        """Seconds until expiry (0 when empty or expired)"""
        if not self._token:
            return 0.0
        return max(0.0, self._expires_at - self._clock())
