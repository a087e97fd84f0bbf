"""Currency conversion to the portfolio's base currency."""

import asyncio
import logging
import math
from typing import Protocol

import yfinance as yf

from wealth_tracker.services.errors import RateUnavailableError

logger = logging.getLogger(__name__)


class RateSource(Protocol):
    async def get_rate(self, base_currency: str, target_currency: str) -> float:
        """Return how many units of target_currency one base_currency buys."""
        ...


class YahooRateSource:
    """Fetches spot FX rates from Yahoo Finance currency pairs (e.g. AUDUSD=X)."""

    def _fetch(self, pair: str) -> float | None:
        return yf.Ticker(pair).fast_info.last_price

    async def get_rate(self, base_currency: str, target_currency: str) -> float:
        pair = f"{base_currency}{target_currency}=X"
        rate = await asyncio.to_thread(self._fetch, pair)
        logger.info(f"Fetched FX rate {pair} = {rate}")
        return rate


class MockRateSource:
    """Fixed rates for every pair, for running without market access."""

    def __init__(self, rate: float = 1.0):
        self.rate = rate

    async def get_rate(self, base_currency: str, target_currency: str) -> float:
        logger.info(f"Using mock FX rate {base_currency}{target_currency} = {self.rate}")
        return self.rate


def build_rate_source(use_mock: bool) -> RateSource:
    if use_mock:
        return MockRateSource()
    return YahooRateSource()


class ExchangeRateResolver:
    """Resolves conversion factors into the base currency for a single run.

    Each currency is looked up at most once. The cache stores the lookup task
    rather than its result so that valuations running concurrently share one
    request instead of racing to fill the same entry.
    """

    def __init__(self, base_currency: str, rate_source: RateSource):
        self.base_currency = base_currency
        self._rate_source = rate_source
        self._lookups: dict[str, asyncio.Task[float]] = {}

    async def resolve(self, source_currency: str) -> float:
        """Return the multiplier converting source_currency amounts to the base currency."""
        if source_currency == self.base_currency:
            return 1.0

        lookup = self._lookups.get(source_currency)
        if lookup is None:
            lookup = asyncio.ensure_future(self._lookup(source_currency))
            self._lookups[source_currency] = lookup
        return await lookup

    async def _lookup(self, source_currency: str) -> float:
        try:
            quoted = await self._rate_source.get_rate(
                self.base_currency, source_currency
            )
        except Exception as e:
            raise RateUnavailableError(
                source_currency, self.base_currency, str(e)
            ) from e

        if (
            not isinstance(quoted, (int, float))
            or isinstance(quoted, bool)
            or not math.isfinite(quoted)
            or quoted <= 0
        ):
            raise RateUnavailableError(
                source_currency, self.base_currency, f"invalid rate {quoted!r}"
            )
        # Source quotes base->source; invert for source->base
        return 1 / quoted

    @property
    def resolved(self) -> dict[str, float]:
        """Factors resolved successfully so far in this run."""
        return {
            currency: task.result()
            for currency, task in self._lookups.items()
            if task.done() and not task.cancelled() and task.exception() is None
        }
