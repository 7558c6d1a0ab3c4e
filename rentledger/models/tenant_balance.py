"""TenantBalance ORM model: stored credit per (tenant, occupancy)."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rentledger.models import Base, BaseModel


class TenantBalance(Base, BaseModel):
    """Running credit a tenant holds against future bills of one occupancy.

    The amount is the sum of every delta the balance ledger applied for the
    key, floored at zero. Rows are created on first settlement and never
    deleted.
    """

    __tablename__ = "tenant_balances"

    tenant_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    occupancy_id: Mapped[int] = mapped_column(
        ForeignKey("occupancies.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        default=Decimal("0.00"),
        nullable=False,
        comment="Positive = credit usable against future bills",
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "occupancy_id", name="uq_tenant_balance_key"),
    )

    def __repr__(self) -> str:
        return (
            f"<TenantBalance(tenant_id={self.tenant_id}, occupancy_id={self.occupancy_id}, "
            f"amount={self.amount})>"
        )


__all__ = ["TenantBalance"]
