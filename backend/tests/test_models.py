"""Tests for database models."""

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from wealth_tracker.models.database import Base
from wealth_tracker.models.portfolio import Portfolio, PortfolioHolding


@pytest_asyncio.fixture
async def db_session():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    async with async_session() as session:
        yield session
    await engine.dispose()


@pytest.mark.asyncio
async def test_create_portfolio(db_session):
    portfolio = Portfolio(name="Super", base_currency="AUD")
    db_session.add(portfolio)
    await db_session.commit()

    result = await db_session.get(Portfolio, portfolio.id)
    assert result is not None
    assert result.base_currency == "AUD"
    assert result.created_at


@pytest.mark.asyncio
async def test_holding_cost_basis_value(db_session):
    holding = PortfolioHolding(
        portfolio_id=1,
        symbol="AAPL",
        name="Apple",
        quantity=4,
        average_cost_basis=150.25,
        position=0,
    )
    db_session.add(holding)
    await db_session.commit()

    result = await db_session.get(PortfolioHolding, holding.id)
    assert result.cost_basis_value == pytest.approx(601.0)


@pytest.mark.asyncio
async def test_symbol_unique_per_portfolio(db_session):
    for _ in range(2):
        db_session.add(
            PortfolioHolding(
                portfolio_id=1,
                symbol="AAPL",
                name="Apple",
                quantity=1,
                average_cost_basis=1,
                position=0,
            )
        )
    with pytest.raises(IntegrityError):
        await db_session.commit()
