"""Integration test: full flow from buying holdings to a converted report."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from wealth_tracker.main import app
from wealth_tracker.models.database import Base, get_db


@pytest_asyncio.fixture
async def db_session():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()
    await engine.dispose()


def _yahoo(symbol: str) -> MagicMock:
    market = {
        "CBA.AX": (120.0, 118.0, "AUD"),
        "AAPL": (210.0, 200.0, "USD"),
        "MSFT": (400.0, 404.0, "USD"),
        "AUDUSD=X": (0.64, None, None),
    }
    price, previous_close, currency = market[symbol]
    ticker = MagicMock()
    ticker.fast_info = SimpleNamespace(
        last_price=price, previous_close=previous_close, currency=currency
    )
    return ticker


@pytest.mark.asyncio
async def test_full_flow(db_session):
    """Test: create portfolio -> buy holdings -> fetch converted performance."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        # 1. Create portfolio
        resp = await client.post(
            "/api/portfolio", json={"name": "Super", "base_currency": "AUD"}
        )
        assert resp.status_code == 200
        portfolio_id = resp.json()["id"]

        # 2. Buy holdings, AAPL twice to average the cost basis
        for symbol, quantity, price in [
            ("CBA.AX", 10, 100.0),
            ("AAPL", 5, 150.0),
            ("MSFT", 2, 350.0),
            ("AAPL", 5, 170.0),
        ]:
            resp = await client.post(
                f"/api/portfolio/{portfolio_id}/buy",
                json={"symbol": symbol, "quantity": quantity, "price": price},
            )
            assert resp.status_code == 200

        # 3. Performance with Yahoo Finance mocked
        with (
            patch("wealth_tracker.services.performance.config.USE_MOCK_DATA", False),
            patch(
                "wealth_tracker.services.market_data.yf.Ticker", side_effect=_yahoo
            ) as mock_ticker,
        ):
            resp = await client.get(f"/api/portfolio/{portfolio_id}/performance")

        assert resp.status_code == 200
        data = resp.json()

        # One FX lookup shared by both USD holdings
        fx_calls = [c for c in mock_ticker.call_args_list if c.args[0] == "AUDUSD=X"]
        assert len(fx_calls) == 1

        factor = 1 / 0.64
        assert [h["symbol"] for h in data["holdings"]] == ["CBA.AX", "AAPL", "MSFT"]
        cba, aapl, msft = data["holdings"]
        assert cba["current_value"] == pytest.approx(1200.0)
        assert aapl["cost_basis_value"] == pytest.approx(1600.0 * factor)
        assert aapl["overall_change_percent"] == pytest.approx(31.25)
        assert msft["daily_change"] == pytest.approx(-8.0 * factor)

        expected_total = 1200.0 + (2100.0 + 800.0) * factor
        assert data["total_current_value"] == pytest.approx(expected_total)
        assert data["total_cost_basis_value"] == pytest.approx(
            1000.0 + (1600.0 + 700.0) * factor
        )
