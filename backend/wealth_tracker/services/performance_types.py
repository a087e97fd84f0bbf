"""Value types passed through the performance engine.

All models are frozen; a report is built once per run and never mutated.
Monetary fields on HoldingResult and PerformanceReport are in the base
currency.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Holding(_Frozen):
    symbol: str
    name: str
    quantity: float = Field(gt=0)
    # Per-unit price in the holding's native currency; not validated here so
    # that valuation can reject a zero basis explicitly.
    average_cost_basis: float


class Quote(_Frozen):
    symbol: str
    current_price: float
    previous_close: float
    change: float
    change_percent: float
    currency: str
    name: str | None = None


class HoldingResult(_Frozen):
    symbol: str
    name: str
    quantity: float
    currency: str  # native quote currency
    exchange_rate: float  # factor applied to reach the base currency
    current_price: float
    change: float
    change_percent: float
    current_value: float
    previous_value: float
    daily_change: float
    cost_basis_value: float
    overall_change: float
    overall_change_percent: float
    weight: float | None = None


class PortfolioTotals(_Frozen):
    total_current_value: float
    total_previous_value: float
    total_daily_change: float
    total_daily_change_percent: float
    total_cost_basis_value: float
    total_overall_change: float
    total_overall_change_percent: float


class PerformanceReport(PortfolioTotals):
    base_currency: str
    holdings: tuple[HoldingResult, ...]
    generated_at: datetime


class HoldingsSnapshot(_Frozen):
    """Ordered holdings as read from the store, with the portfolio's base currency."""

    portfolio_id: int
    name: str
    base_currency: str
    holdings: tuple[Holding, ...]
