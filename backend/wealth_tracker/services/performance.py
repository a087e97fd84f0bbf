"""Portfolio performance engine.

Turns holdings plus market quotes into per-holding and portfolio-level
performance figures, all expressed in the portfolio's base currency.

Per holding (native currency, then scaled by the FX factor):
    cost_basis_value = quantity * average_cost_basis
    current_value    = quantity * current_price
    previous_value   = quantity * previous_close
    daily_change     = current_value - previous_value
    overall_change   = current_value - cost_basis_value
    overall_change_% = overall_change / cost_basis_value * 100

Percentages are ratios and are never rescaled by currency conversion.
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone

from wealth_tracker import config
from wealth_tracker.services.errors import (
    DegenerateAggregateError,
    EmptyPortfolioError,
    InvalidCostBasisError,
    MissingQuoteError,
)
from wealth_tracker.services.exchange_rates import (
    ExchangeRateResolver,
    RateSource,
    build_rate_source,
)
from wealth_tracker.services.market_data import QuoteProvider, build_quote_provider
from wealth_tracker.services.performance_types import (
    Holding,
    HoldingResult,
    PerformanceReport,
    PortfolioTotals,
    Quote,
)

logger = logging.getLogger(__name__)


async def valuate(
    holding: Holding, quote: Quote | None, resolver: ExchangeRateResolver
) -> HoldingResult:
    """Value one holding against its quote, converted to the base currency."""
    if quote is None:
        raise MissingQuoteError(holding.symbol)

    quantity = holding.quantity
    cost_basis_value = quantity * holding.average_cost_basis
    if cost_basis_value <= 0:
        raise InvalidCostBasisError(holding.symbol, cost_basis_value)

    current_value = quantity * quote.current_price
    previous_value = quantity * quote.previous_close
    daily_change = current_value - previous_value
    overall_change = current_value - cost_basis_value
    overall_change_percent = overall_change / cost_basis_value * 100

    # Base-currency quotes resolve to 1.0 and go through the same path
    factor = await resolver.resolve(quote.currency)

    return HoldingResult(
        symbol=holding.symbol,
        name=holding.name or quote.name or holding.symbol,
        quantity=quantity,
        currency=quote.currency,
        exchange_rate=factor,
        current_price=quote.current_price * factor,
        change=quote.change * factor,
        change_percent=quote.change_percent,
        current_value=current_value * factor,
        previous_value=previous_value * factor,
        daily_change=daily_change * factor,
        cost_basis_value=cost_basis_value * factor,
        overall_change=overall_change * factor,
        overall_change_percent=overall_change_percent,
    )


def aggregate(results: Sequence[HoldingResult]) -> PortfolioTotals:
    """Sum per-holding results into portfolio totals."""
    if not results:
        raise EmptyPortfolioError()

    total_current_value = sum(r.current_value for r in results)
    total_previous_value = sum(r.previous_value for r in results)
    total_cost_basis_value = sum(r.cost_basis_value for r in results)
    total_overall_change = sum(r.overall_change for r in results)

    if total_previous_value == 0:
        raise DegenerateAggregateError("total_previous_value")
    if total_cost_basis_value == 0:
        raise DegenerateAggregateError("total_cost_basis_value")

    total_daily_change = total_current_value - total_previous_value

    return PortfolioTotals(
        total_current_value=total_current_value,
        total_previous_value=total_previous_value,
        total_daily_change=total_daily_change,
        total_daily_change_percent=total_daily_change / total_previous_value * 100,
        total_cost_basis_value=total_cost_basis_value,
        total_overall_change=total_overall_change,
        total_overall_change_percent=(
            total_overall_change / total_cost_basis_value * 100
        ),
    )


def holding_weights(
    results: Sequence[HoldingResult], total_current_value: float
) -> list[float | None]:
    """Each holding's share of the portfolio's current value, in percent."""
    if total_current_value <= 0:
        return [None] * len(results)
    return [r.current_value / total_current_value * 100 for r in results]


async def compute_performance(
    holdings: Sequence[Holding],
    quotes: Mapping[str, Quote],
    base_currency: str,
    rate_source: RateSource,
) -> PerformanceReport:
    """Build a performance report for holdings priced by quotes.

    The whole report fails if any holding cannot be valued; a partial report
    would misstate the totals.
    """
    if not holdings:
        raise EmptyPortfolioError()

    missing = [h.symbol for h in holdings if h.symbol not in quotes]
    if missing:
        raise MissingQuoteError(missing)

    # Fresh per run so rates never leak into the next report
    resolver = ExchangeRateResolver(base_currency, rate_source)
    results = await asyncio.gather(
        *(valuate(h, quotes[h.symbol], resolver) for h in holdings)
    )
    if resolver.resolved:
        logger.info(f"Converted to {base_currency} using rates {resolver.resolved}")

    totals = aggregate(results)
    weights = holding_weights(results, totals.total_current_value)

    return PerformanceReport(
        **totals.model_dump(),
        base_currency=base_currency,
        holdings=tuple(
            r.model_copy(update={"weight": w}) for r, w in zip(results, weights)
        ),
        generated_at=datetime.now(timezone.utc),
    )


class PerformanceEngine:
    """Fetches quotes for a set of holdings and computes their performance."""

    def __init__(self, quote_provider: QuoteProvider, rate_source: RateSource):
        self.quote_provider = quote_provider
        self.rate_source = rate_source

    async def compute_performance(
        self, holdings: Sequence[Holding], base_currency: str
    ) -> PerformanceReport:
        if not holdings:
            raise EmptyPortfolioError()

        symbols = {h.symbol for h in holdings}
        quotes = await self.quote_provider.get_quotes(symbols)
        logger.info(f"Received {len(quotes)}/{len(symbols)} quotes")

        report = await compute_performance(
            holdings, quotes, base_currency, self.rate_source
        )
        logger.info(
            f"Portfolio value {report.total_current_value:.2f} {base_currency} "
            f"({report.total_daily_change_percent:+.2f}% today)"
        )
        return report


def build_performance_engine() -> PerformanceEngine:
    """Create an engine wired to the configured market data collaborators."""
    quote_provider = build_quote_provider(
        config.USE_MOCK_DATA, config.BASE_CURRENCY, timeout=config.QUOTE_TIMEOUT
    )
    return PerformanceEngine(quote_provider, build_rate_source(config.USE_MOCK_DATA))
