"""
Process-wide exchange-rate cache.

Serves the cached table while it is fresh, refreshes it once it is stale,
and keeps serving the previous table if a refresh fails. After a failure
the next attempt waits ``retry_after`` seconds.
"""

import logging
import threading
import time
from collections.abc import Callable
from functools import lru_cache

import requests

from planora.core.cost_utils import STATIC_EXCHANGE_RATES
from planora.core.settings import get_settings

logger = logging.getLogger(__name__)

RateFetcher = Callable[[], dict[str, float]]


def fetch_live_rates(url: str, timeout: float = 10) -> dict[str, float]:
    """Fetch USD-based rates from an exchangerate-api compatible endpoint."""
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    data = response.json()
    rates = data.get("rates") if isinstance(data, dict) else None
    if not rates:
        raise ValueError("exchange rate response has no 'rates'")
    return {code: float(value) for code, value in rates.items()}


class ExchangeRateCache:
    def __init__(
        self,
        fetch: RateFetcher,
        ttl: float = 3600,
        retry_after: float = 300,
        clock: Callable[[], float] = time.monotonic,
        initial_rates: dict[str, float] | None = None,
    ) -> None:
        self._fetch = fetch
        self._ttl = ttl
        self._retry_after = retry_after
        self._clock = clock
        self._rates = dict(initial_rates or STATIC_EXCHANGE_RATES)
        self._fetched_at: float | None = None
        self._failed_at: float | None = None
        self._lock = threading.Lock()

    def is_stale(self) -> bool:
        return self._fetched_at is None or self._clock() - self._fetched_at >= self._ttl

    def _backing_off(self) -> bool:
        return self._failed_at is not None and self._clock() - self._failed_at < self._retry_after

    def rates(self) -> dict[str, float]:
        if self.is_stale() and not self._backing_off():
            self.refresh()
        return self._rates

    def refresh(self) -> bool:
        """Try to replace the cached table. Returns False if the fetch failed."""
        try:
            fresh = self._fetch()
        except Exception as e:
            logger.warning(f"Exchange rate refresh failed, keeping previous rates: {e}")
            with self._lock:
                self._failed_at = self._clock()
            return False

        with self._lock:
            self._rates = {**self._rates, **fresh}
            self._fetched_at = self._clock()
            self._failed_at = None
        return True

    def convert(self, amount: float, from_currency: str, to_currency: str) -> float:
        if from_currency == to_currency:
            return amount
        rates = self.rates()
        usd = amount / (rates.get(from_currency) or 1.0)
        return usd * (rates.get(to_currency) or 1.0)


@lru_cache
def get_rate_cache() -> ExchangeRateCache:
    settings = get_settings()
    return ExchangeRateCache(
        fetch=lambda: fetch_live_rates(settings.exchange_rate_url),
        ttl=settings.exchange_rate_ttl,
        retry_after=settings.exchange_rate_retry_after,
    )
