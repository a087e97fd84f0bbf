"""Errors raised by the portfolio performance engine.

None of these are recovered from inside the engine: each one aborts the
current computation and carries the offending symbol or currency so the
caller can log it or retry.
"""


class PerformanceError(Exception):
    """Base class for performance computation failures."""


class MissingQuoteError(PerformanceError):
    """One or more holdings have no matching quote."""

    def __init__(self, symbols: list[str] | str):
        if isinstance(symbols, str):
            symbols = [symbols]
        self.symbols = list(symbols)
        super().__init__(f"No quote available for: {', '.join(self.symbols)}")


class RateUnavailableError(PerformanceError):
    """A currency could not be converted to the base currency."""

    def __init__(self, currency: str, base_currency: str, reason: str = ""):
        self.currency = currency
        self.base_currency = base_currency
        message = f"Exchange rate {currency}->{base_currency} unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InvalidCostBasisError(PerformanceError):
    """A holding's cost basis is zero or negative."""

    def __init__(self, symbol: str, cost_basis_value: float):
        self.symbol = symbol
        self.cost_basis_value = cost_basis_value
        super().__init__(
            f"Invalid cost basis for {symbol}: {cost_basis_value!r}"
        )


class EmptyPortfolioError(PerformanceError):
    """There are no holdings to report on."""

    def __init__(self):
        super().__init__("Portfolio has no holdings")


class DegenerateAggregateError(PerformanceError):
    """An aggregate ratio has a zero denominator despite holdings being present."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Cannot compute portfolio percentage: {field} is zero")
