"""Bearer token cache with single-flight refresh."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Tuple

from services.errors import CredentialError

logger = logging.getLogger(__name__)

# Exchanges credentials for a token; returns (token, ttl_seconds).
CredentialExchange = Callable[[], Awaitable[Tuple[str, float]]]

MIN_SAFETY_MARGIN_SECONDS = 60.0


class TokenCache:
    """Cache a third-party bearer token and refresh it on demand.

    The cached token is served while `now < expiry - safety_margin`. Refreshes
    are serialized by a lock so concurrent callers that all see an expired or
    missing token trigger a single exchange; the rest reuse its result.

    Args:
        exchange: Async callable performing the credential exchange.
        safety_margin: Seconds before expiry at which the token is treated as stale (>= 60).
        timeout: Upper bound in seconds for one exchange call.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        exchange: CredentialExchange,
        *,
        safety_margin: float = MIN_SAFETY_MARGIN_SECONDS,
        timeout: float = 15.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if safety_margin < MIN_SAFETY_MARGIN_SECONDS:
            raise ValueError(f"safety_margin must be at least {MIN_SAFETY_MARGIN_SECONDS:.0f} seconds")
        self._exchange = exchange
        self._safety_margin = safety_margin
        self._timeout = timeout
        self._clock = clock
        self._token: Optional[str] = None
        self._expiry: float = 0.0
        self._lock = asyncio.Lock()

    def _cached(self) -> Optional[str]:
        if self._token and self._clock() < self._expiry - self._safety_margin:
            return self._token
        return None

    async def get_token(self) -> str:
        """Return a valid token, refreshing it if needed.

        Raises:
            CredentialError: If the exchange fails or times out. Cached state is left untouched.
        """
        token = self._cached()
        if token is not None:
            return token

        async with self._lock:
            # Another caller may have refreshed while we waited for the lock.
            token = self._cached()
            if token is not None:
                return token
            return await self._refresh()

    async def _refresh(self) -> str:
        logger.debug("Refreshing bearer token")
        try:
            token, ttl = await asyncio.wait_for(self._exchange(), timeout=self._timeout)
        except CredentialError:
            raise
        except asyncio.TimeoutError as exc:
            raise CredentialError(f"Token exchange timed out after {self._timeout:.0f}s") from exc
        except Exception as exc:
            raise CredentialError(f"Token exchange failed: {exc}") from exc

        if not token:
            raise CredentialError("Token exchange returned an empty token")

        self._token = token
        self._expiry = self._clock() + float(ttl)
        logger.info("Bearer token refreshed, valid for %.0fs", float(ttl))
        return token

    def invalidate(self) -> None:
        """Drop the cached token so the next call performs a refresh."""
        self._token = None
        self._expiry = 0.0
