"""Portfolio and PortfolioHolding models."""

from datetime import datetime
from sqlalchemy import String, Float, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from wealth_tracker.models.database import Base


class Portfolio(Base):
    __tablename__ = "portfolio"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100))
    base_currency: Mapped[str] = mapped_column(String(3))
    created_at: Mapped[str] = mapped_column(
        String(30), default=lambda: datetime.now().isoformat()
    )


class PortfolioHolding(Base):
    __tablename__ = "portfolio_holding"
    __table_args__ = (UniqueConstraint("portfolio_id", "symbol"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    portfolio_id: Mapped[int] = mapped_column(Integer, index=True)
    symbol: Mapped[str] = mapped_column(String(20))
    name: Mapped[str] = mapped_column(String(100))
    quantity: Mapped[float] = mapped_column(Float)
    average_cost_basis: Mapped[float] = mapped_column(Float)
    position: Mapped[int] = mapped_column(Integer)  # report order
    added_at: Mapped[str] = mapped_column(
        String(30), default=lambda: datetime.now().isoformat()
    )

    @property
    def cost_basis_value(self) -> float:
        return self.quantity * self.average_cost_basis
