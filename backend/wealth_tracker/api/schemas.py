"""Pydantic schemas for API request/response."""

from pydantic import BaseModel, Field


class PortfolioCreateRequest(BaseModel):
    name: str
    base_currency: str | None = None


class PortfolioRenameRequest(BaseModel):
    name: str


class BuyRequest(BaseModel):
    symbol: str
    quantity: float = Field(gt=0)
    price: float = Field(gt=0)
    name: str | None = None


class PortfolioResponse(BaseModel):
    id: int
    name: str
    base_currency: str
    created_at: str


class HoldingResponse(BaseModel):
    symbol: str
    name: str
    quantity: float
    average_cost_basis: float
    cost_basis_value: float


class PortfolioDetailResponse(PortfolioResponse):
    holdings: list[HoldingResponse]
