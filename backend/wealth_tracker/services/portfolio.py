"""Portfolio management service."""

import json
import logging
from pathlib import Path

from pydantic import ValidationError
from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from wealth_tracker.models.portfolio import Portfolio, PortfolioHolding
from wealth_tracker.services.performance_types import Holding, HoldingsSnapshot

logger = logging.getLogger(__name__)


class PortfolioNotFoundError(LookupError):
    def __init__(self, portfolio_id: int | None):
        self.portfolio_id = portfolio_id
        super().__init__(f"Portfolio {portfolio_id} not found")


class InvalidHoldingError(ValueError):
    """A stored or imported holding that cannot be valued."""

    def __init__(self, symbol: str, reason: str):
        self.symbol = symbol
        super().__init__(f"Invalid holding {symbol}: {reason}")


class PortfolioService:
    """Manages user portfolios and their equity holdings."""

    async def create_portfolio(
        self, session: AsyncSession, name: str, base_currency: str
    ) -> Portfolio:
        portfolio = Portfolio(name=name, base_currency=base_currency.upper())
        session.add(portfolio)
        await session.commit()
        return portfolio

    async def get_portfolio(
        self, session: AsyncSession, portfolio_id: int
    ) -> Portfolio | None:
        return await session.get(Portfolio, portfolio_id)

    async def list_portfolios(self, session: AsyncSession) -> list[Portfolio]:
        result = await session.execute(select(Portfolio).order_by(Portfolio.id))
        return list(result.scalars().all())

    async def delete_portfolio(self, session: AsyncSession, portfolio_id: int) -> None:
        await session.execute(
            delete(PortfolioHolding).where(PortfolioHolding.portfolio_id == portfolio_id)
        )
        await session.execute(delete(Portfolio).where(Portfolio.id == portfolio_id))
        await session.commit()

    async def rename_portfolio(
        self, session: AsyncSession, portfolio_id: int, name: str
    ) -> Portfolio | None:
        portfolio = await session.get(Portfolio, portfolio_id)
        if portfolio is None:
            return None
        portfolio.name = name
        await session.commit()
        return portfolio

    async def get_holding(
        self, session: AsyncSession, portfolio_id: int, symbol: str
    ) -> PortfolioHolding | None:
        result = await session.execute(
            select(PortfolioHolding).where(
                PortfolioHolding.portfolio_id == portfolio_id,
                PortfolioHolding.symbol == symbol,
            )
        )
        return result.scalar_one_or_none()

    async def buy(
        self,
        session: AsyncSession,
        portfolio_id: int,
        symbol: str,
        quantity: float,
        price: float,
        name: str | None = None,
    ) -> PortfolioHolding:
        """Record a purchase, folding it into the holding's weighted average cost."""
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        if price <= 0:
            raise ValueError("Price must be positive")

        holding = await self.get_holding(session, portfolio_id, symbol)
        if holding is None:
            last_position = await session.scalar(
                select(func.max(PortfolioHolding.position)).where(
                    PortfolioHolding.portfolio_id == portfolio_id
                )
            )
            holding = PortfolioHolding(
                portfolio_id=portfolio_id,
                symbol=symbol,
                name=name or symbol,
                quantity=quantity,
                average_cost_basis=price,
                position=0 if last_position is None else last_position + 1,
            )
            session.add(holding)
        else:
            total_quantity = holding.quantity + quantity
            holding.average_cost_basis = (
                holding.average_cost_basis * holding.quantity + price * quantity
            ) / total_quantity
            holding.quantity = total_quantity
            if name:
                holding.name = name

        await session.commit()
        logger.info(
            f"Bought {quantity} {symbol} @ {price}; now {holding.quantity} "
            f"@ avg {holding.average_cost_basis:.4f}"
        )
        return holding

    async def get_holdings(
        self, session: AsyncSession, portfolio_id: int
    ) -> list[PortfolioHolding]:
        result = await session.execute(
            select(PortfolioHolding)
            .where(PortfolioHolding.portfolio_id == portfolio_id)
            .order_by(PortfolioHolding.position, PortfolioHolding.id)
        )
        return list(result.scalars().all())

    async def remove_holding(
        self, session: AsyncSession, portfolio_id: int, symbol: str
    ) -> None:
        await session.execute(
            delete(PortfolioHolding).where(
                PortfolioHolding.portfolio_id == portfolio_id,
                PortfolioHolding.symbol == symbol,
            )
        )
        await session.commit()

    async def load_holdings(
        self, session: AsyncSession, portfolio_id: int | None = None
    ) -> HoldingsSnapshot:
        """Read a portfolio's holdings in report order.

        Without an id, the first portfolio is used.
        """
        if portfolio_id is None:
            portfolio = await session.scalar(
                select(Portfolio).order_by(Portfolio.id).limit(1)
            )
        else:
            portfolio = await session.get(Portfolio, portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)

        holdings = []
        for row in await self.get_holdings(session, portfolio.id):
            try:
                holdings.append(
                    Holding(
                        symbol=row.symbol,
                        name=row.name,
                        quantity=row.quantity,
                        average_cost_basis=row.average_cost_basis,
                    )
                )
            except ValidationError as e:
                raise InvalidHoldingError(
                    row.symbol, f"quantity {row.quantity} is not positive"
                ) from e
        return HoldingsSnapshot(
            portfolio_id=portfolio.id,
            name=portfolio.name,
            base_currency=portfolio.base_currency,
            holdings=tuple(holdings),
        )

    async def import_json(
        self,
        session: AsyncSession,
        path: Path,
        name: str,
        default_currency: str,
    ) -> Portfolio:
        """Create a portfolio from a portfolio.json file.

        Expected layout: {"currency": "AUD", "stocks": [{"symbol", "name",
        "quantity", "avg_buy_price"}, ...]}; "currency" is optional.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        currency = data.get("currency") or default_currency

        # Validate every row before anything is written
        rows = []
        for stock in data.get("stocks", []):
            symbol = stock["symbol"]
            quantity = float(stock["quantity"])
            price = float(stock["avg_buy_price"])
            if quantity <= 0:
                raise InvalidHoldingError(symbol, "quantity must be positive")
            if price <= 0:
                raise InvalidHoldingError(symbol, "average buy price must be positive")
            rows.append((symbol, stock.get("name") or symbol, quantity, price))

        portfolio = Portfolio(name=name, base_currency=currency.upper())
        session.add(portfolio)
        await session.flush()

        for position, (symbol, stock_name, quantity, price) in enumerate(rows):
            session.add(
                PortfolioHolding(
                    portfolio_id=portfolio.id,
                    symbol=symbol,
                    name=stock_name,
                    quantity=quantity,
                    average_cost_basis=price,
                    position=position,
                )
            )
        await session.commit()
        logger.info(
            f"Imported {len(rows)} holdings from {path} into portfolio {portfolio.id}"
        )
        return portfolio


portfolio_service = PortfolioService()
