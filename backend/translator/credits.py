"""Credit balance: remote fetch with retry, process-wide cache persisted to the local database."""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError

from translator.config import CREDIT_BALANCE_URL, CREDIT_CACHE_TTL_SECONDS, CREDIT_MAX_RETRIES, CREDIT_RETRY_DELAY
from translator.db import load_credit_balance, save_credit_balance
from translator.errors import ConfigurationError, TranslatorError, TransientProviderError
from translator.translation.provider import classify_response, parse_response
from translator.translation.retry import BACKOFF_LINEAR, RetryPolicy, Sleep
from translator.translation.schemas import CreditBalanceResponse

logger = logging.getLogger("translator.credits")


@dataclass
class CreditBalance:
    success: bool
    credits: int
    message: str
    stale: bool = False


class CreditBalanceCache:
    """Last known balance with an expiry. Kept in memory and mirrored to the database."""

    def __init__(self, ttl_seconds: int = CREDIT_CACHE_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._credits: Optional[int] = None
        self._expires_at: float = 0.0

    def load(self) -> None:
        """Warm the in-memory value from the database."""
        try:
            row = load_credit_balance()
        except SQLAlchemyError as e:
            logger.warning("Failed to load cached balance: %s", e)
            return
        if row is not None:
            self._credits, self._expires_at = row

    def store(self, credits: int) -> None:
        self._credits = credits
        self._expires_at = self._clock() + self.ttl_seconds
        try:
            save_credit_balance(credits, self._expires_at)
        except SQLAlchemyError as e:
            logger.error("Failed to store balance in cache: %s", e)

    def get(self) -> Optional[int]:
        if self._credits is None or self._clock() > self._expires_at:
            return None
        return self._credits


class CreditBalanceService:
    def __init__(
        self,
        url: str = CREDIT_BALANCE_URL,
        cache: Optional[CreditBalanceCache] = None,
        client: Optional[httpx.AsyncClient] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.url = url
        self.cache = cache or CreditBalanceCache()
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(15.0, connect=5.0))
        # CREDIT_MAX_RETRIES retries after the first attempt
        self.retry_policy = retry_policy or RetryPolicy(
            max_retries=CREDIT_MAX_RETRIES + 1, retry_delay=CREDIT_RETRY_DELAY, backoff=BACKOFF_LINEAR,
        )
        self._sleep = sleep
        self._refreshes: set[asyncio.Task] = set()

    def cached(self) -> Optional[CreditBalance]:
        credits = self.cache.get()
        if credits is None:
            return None
        return CreditBalance(success=True, credits=credits, message="Cached balance")

    async def _request(self) -> CreditBalanceResponse:
        try:
            response = await self._client.get(
                self.url, params={"t": int(time.time() * 1000)}, headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            raise TransientProviderError(f"Credit balance request failed: {e}") from e
        try:
            classify_response(response)
        except TranslatorError as e:
            # Any HTTP failure from the webhook is worth retrying
            raise TransientProviderError(e.message) from e
        return parse_response(response, CreditBalanceResponse)

    async def fetch(self) -> CreditBalance:
        """Fetch a fresh balance; fall back to the unexpired cache when every attempt fails."""
        try:
            if not self.url:
                raise ConfigurationError("Credit balance service is not configured")
            logger.info("Fetching credit balance...")
            data = await self.retry_policy.run(self._request, sleep=self._sleep)
        except TranslatorError as e:
            logger.error("Error fetching credit balance: %s", e.message)
            cached = self.cache.get()
            if cached is not None:
                return CreditBalance(
                    success=True, credits=cached, message="Using last known balance (offline)", stale=True,
                )
            return CreditBalance(success=False, credits=0, message=e.message)
        self.cache.store(data.credits)
        return CreditBalance(success=True, credits=data.credits, message=data.message or "Balance updated")

    def schedule_refresh(self) -> None:
        """Refresh in the background, e.g. after a translation completed."""
        refresh = asyncio.get_running_loop().create_task(self.fetch())
        self._refreshes.add(refresh)
        refresh.add_done_callback(self._refresh_done)

    def _refresh_done(self, refresh: asyncio.Task) -> None:
        self._refreshes.discard(refresh)
        if refresh.cancelled():
            return
        exc = refresh.exception()
        if exc is not None:
            logger.error("Failed to update credit balance: %s", exc)
        else:
            logger.info("Credit balance updated after translation")

    async def aclose(self) -> None:
        for refresh in list(self._refreshes):
            refresh.cancel()
        await self._client.aclose()
