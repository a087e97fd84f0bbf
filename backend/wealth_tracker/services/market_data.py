"""Market data service using yfinance for equity quotes."""

import asyncio
import logging
import math
import random
from typing import Any, Protocol

import yfinance as yf

from wealth_tracker.services.performance_types import Quote

logger = logging.getLogger(__name__)


class QuoteProvider(Protocol):
    async def get_quotes(self, symbols: set[str]) -> dict[str, Quote]:
        """Return a quote per symbol; symbols that cannot be priced are omitted."""
        ...


def _clean(value: Any) -> float | None:
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(value) else value


def build_quote(
    symbol: str,
    price: float,
    previous_close: float,
    currency: str,
    name: str | None = None,
) -> Quote:
    change = price - previous_close
    change_percent = change / previous_close * 100 if previous_close > 0 else 0.0
    return Quote(
        symbol=symbol,
        current_price=price,
        previous_close=previous_close,
        change=change,
        change_percent=change_percent,
        currency=currency,
        name=name,
    )


class YahooQuoteProvider:
    """Fetches delayed quotes from Yahoo Finance.

    Each symbol is fetched in a worker thread; the batch runs concurrently.
    """

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout

    def get_stock_quote(self, symbol: str) -> Quote | None:
        """Fetch one quote. Returns None if Yahoo has no usable price."""
        try:
            fi = yf.Ticker(symbol).fast_info
            price = _clean(fi.last_price)
            if price is None:
                logger.warning(f"No price for {symbol}")
                return None
            previous_close = _clean(getattr(fi, "previous_close", None))
            if previous_close is None:
                logger.warning(f"No previous close for {symbol}")
                return None
            currency = getattr(fi, "currency", None)
            if not currency:
                logger.warning(f"No currency for {symbol}")
                return None
            return build_quote(symbol, price, previous_close, str(currency))
        except Exception as e:
            logger.error(f"Failed to fetch quote for {symbol}: {e}")
            return None

    async def get_quotes(self, symbols: set[str]) -> dict[str, Quote]:
        ordered = sorted(symbols)
        fetches = asyncio.gather(
            *(asyncio.to_thread(self.get_stock_quote, s) for s in ordered)
        )
        quotes = await asyncio.wait_for(fetches, timeout=self.timeout)
        result = {s: q for s, q in zip(ordered, quotes) if q is not None}
        if len(result) < len(ordered):
            missing = sorted(set(ordered) - result.keys())
            logger.warning(f"Quotes missing for {missing}")
        return result


class MockQuoteProvider:
    """Random quotes in the base currency, for running without market access."""

    def __init__(self, currency: str, seed: int | None = None):
        self.currency = currency
        self._random = random.Random(seed)

    async def get_quotes(self, symbols: set[str]) -> dict[str, Quote]:
        result = {}
        for symbol in sorted(symbols):
            price = self._random.random() * 450 + 50
            previous_close = price * (1 + (self._random.random() * 0.1 - 0.05))
            logger.info(f"Generated mock quote for {symbol}")
            result[symbol] = build_quote(symbol, price, previous_close, self.currency)
        return result


def build_quote_provider(
    use_mock: bool, currency: str, timeout: float | None = None
) -> QuoteProvider:
    if use_mock:
        logger.info("Using mock market data (Yahoo Finance not queried)")
        return MockQuoteProvider(currency)
    return YahooQuoteProvider(timeout=timeout)
