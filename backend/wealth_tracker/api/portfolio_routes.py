"""Portfolio API routes."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from wealth_tracker.config import BASE_CURRENCY
from wealth_tracker.models.database import get_db
from wealth_tracker.models.portfolio import Portfolio, PortfolioHolding
from wealth_tracker.services.errors import (
    MissingQuoteError,
    PerformanceError,
    RateUnavailableError,
)
from wealth_tracker.services.notification import build_notifier
from wealth_tracker.services.performance import build_performance_engine
from wealth_tracker.services.performance_types import PerformanceReport
from wealth_tracker.services.portfolio import InvalidHoldingError, portfolio_service
from wealth_tracker.api.schemas import (
    BuyRequest,
    HoldingResponse,
    PortfolioCreateRequest,
    PortfolioDetailResponse,
    PortfolioRenameRequest,
    PortfolioResponse,
)

router = APIRouter(prefix="/api/portfolio", tags=["portfolio"])


def _portfolio_response(p: Portfolio) -> PortfolioResponse:
    return PortfolioResponse(
        id=p.id, name=p.name, base_currency=p.base_currency, created_at=p.created_at
    )


def _normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


def _holding_response(h: PortfolioHolding) -> HoldingResponse:
    return HoldingResponse(
        symbol=h.symbol,
        name=h.name,
        quantity=h.quantity,
        average_cost_basis=h.average_cost_basis,
        cost_basis_value=h.cost_basis_value,
    )


async def _compute_report(db: AsyncSession, portfolio_id: int) -> PerformanceReport:
    portfolio = await portfolio_service.get_portfolio(db, portfolio_id)
    if portfolio is None:
        raise HTTPException(status_code=404, detail="Portfolio not found")
    try:
        snapshot = await portfolio_service.load_holdings(db, portfolio_id)
        return await build_performance_engine().compute_performance(
            snapshot.holdings, snapshot.base_currency
        )
    except (MissingQuoteError, RateUnavailableError) as e:
        # Upstream market data problem
        raise HTTPException(status_code=502, detail=str(e))
    except (PerformanceError, InvalidHoldingError) as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("", response_model=PortfolioResponse)
async def create_portfolio(
    req: PortfolioCreateRequest, db: AsyncSession = Depends(get_db)
):
    name = req.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name cannot be empty")
    p = await portfolio_service.create_portfolio(
        db, name, req.base_currency or BASE_CURRENCY
    )
    return _portfolio_response(p)


@router.get("", response_model=list[PortfolioResponse])
async def list_portfolios(db: AsyncSession = Depends(get_db)):
    portfolios = await portfolio_service.list_portfolios(db)
    return [_portfolio_response(p) for p in portfolios]


@router.get("/{portfolio_id}", response_model=PortfolioDetailResponse)
async def get_portfolio_detail(portfolio_id: int, db: AsyncSession = Depends(get_db)):
    portfolio = await portfolio_service.get_portfolio(db, portfolio_id)
    if portfolio is None:
        raise HTTPException(status_code=404, detail="Portfolio not found")
    holdings = await portfolio_service.get_holdings(db, portfolio_id)
    return PortfolioDetailResponse(
        **_portfolio_response(portfolio).model_dump(),
        holdings=[_holding_response(h) for h in holdings],
    )


@router.patch("/{portfolio_id}", response_model=PortfolioResponse)
async def rename_portfolio(
    portfolio_id: int,
    req: PortfolioRenameRequest,
    db: AsyncSession = Depends(get_db),
):
    name = req.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name cannot be empty")
    portfolio = await portfolio_service.rename_portfolio(db, portfolio_id, name)
    if portfolio is None:
        raise HTTPException(status_code=404, detail="Portfolio not found")
    return _portfolio_response(portfolio)


@router.delete("/{portfolio_id}")
async def delete_portfolio(portfolio_id: int, db: AsyncSession = Depends(get_db)):
    await portfolio_service.delete_portfolio(db, portfolio_id)
    return {"status": "ok"}


@router.post("/{portfolio_id}/buy", response_model=HoldingResponse)
async def buy_holding(
    portfolio_id: int,
    req: BuyRequest,
    db: AsyncSession = Depends(get_db),
):
    portfolio = await portfolio_service.get_portfolio(db, portfolio_id)
    if portfolio is None:
        raise HTTPException(status_code=404, detail="Portfolio not found")
    holding = await portfolio_service.buy(
        db,
        portfolio_id,
        _normalize_symbol(req.symbol),
        req.quantity,
        req.price,
        req.name,
    )
    return _holding_response(holding)


@router.delete("/{portfolio_id}/holdings/{symbol}")
async def remove_holding(
    portfolio_id: int,
    symbol: str,
    db: AsyncSession = Depends(get_db),
):
    await portfolio_service.remove_holding(db, portfolio_id, _normalize_symbol(symbol))
    return {"status": "ok"}


@router.get("/{portfolio_id}/performance", response_model=PerformanceReport)
async def get_portfolio_performance(
    portfolio_id: int, db: AsyncSession = Depends(get_db)
):
    return await _compute_report(db, portfolio_id)


@router.post("/{portfolio_id}/notify")
async def notify_portfolio_performance(
    portfolio_id: int, db: AsyncSession = Depends(get_db)
):
    report = await _compute_report(db, portfolio_id)
    result = await build_notifier().send_performance_update(report)
    return {"status": result["status"], "generated_at": report.generated_at}
