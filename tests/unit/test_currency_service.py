import pytest

from planora.core.cost_utils import STATIC_EXCHANGE_RATES
from planora.core.currency_service import ExchangeRateCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class FlakyFetcher:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def test_serves_static_table_until_first_refresh_succeeds():
    fetch = FlakyFetcher([RuntimeError("offline")])
    cache = ExchangeRateCache(fetch, ttl=60, clock=FakeClock())

    assert cache.rates()["JPY"] == STATIC_EXCHANGE_RATES["JPY"]
    assert fetch.calls == 1


def test_fresh_rates_are_cached_for_ttl():
    clock = FakeClock()
    fetch = FlakyFetcher([{"JPY": 150.0}, {"JPY": 155.0}])
    cache = ExchangeRateCache(fetch, ttl=60, clock=clock)

    assert cache.rates()["JPY"] == 150.0
    clock.now = 59
    assert cache.rates()["JPY"] == 150.0
    assert fetch.calls == 1

    clock.now = 60
    assert cache.rates()["JPY"] == 155.0
    assert fetch.calls == 2


def test_failed_refresh_keeps_previous_rates():
    clock = FakeClock()
    fetch = FlakyFetcher([{"JPY": 150.0}, RuntimeError("timeout")])
    cache = ExchangeRateCache(fetch, ttl=60, clock=clock)

    cache.rates()
    clock.now = 120
    assert cache.rates()["JPY"] == 150.0
    assert cache.is_stale()


def test_partial_refresh_keeps_other_currencies():
    fetch = FlakyFetcher([{"JPY": 150.0}])
    cache = ExchangeRateCache(fetch, ttl=60, clock=FakeClock())

    rates = cache.rates()
    assert rates["EUR"] == STATIC_EXCHANGE_RATES["EUR"]


def test_convert_goes_through_usd():
    fetch = FlakyFetcher([{"USD": 1.0, "EUR": 0.5, "JPY": 100.0}])
    cache = ExchangeRateCache(fetch, ttl=60, clock=FakeClock())

    assert cache.convert(10, "EUR", "JPY") == pytest.approx(2000.0)
    assert cache.convert(10, "EUR", "EUR") == 10


def test_failed_refresh_waits_before_retrying():
    clock = FakeClock()
    fetch = FlakyFetcher([RuntimeError("offline"), {"JPY": 150.0}])
    cache = ExchangeRateCache(fetch, ttl=60, retry_after=30, clock=clock)

    cache.rates()
    clock.now = 29
    assert cache.rates()["JPY"] == STATIC_EXCHANGE_RATES["JPY"]
    assert fetch.calls == 1

    clock.now = 30
    assert cache.rates()["JPY"] == 150.0
    assert fetch.calls == 2
    assert not cache.is_stale()
