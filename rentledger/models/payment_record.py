"""PaymentRecord ORM model: append-only ledger of money received."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rentledger.models import Base, BaseModel
from rentledger.models.payment_request import PaymentMethod


class RecordStatus(str, Enum):
    """Ledger entry state. Entries are written once and never change."""

    RECORDED = "recorded"


class PaymentRecord(Base, BaseModel):
    """
    Immutable audit record of one successful settlement.

    `amount` is what the gateway reported as paid; `credit_applied` is what was
    drawn from the tenant's stored balance on top of it. The pair
    (payment_request_id, gateway_reference) is unique so a replayed
    settlement can never write a second entry.
    """

    __tablename__ = "payment_records"

    payment_request_id: Mapped[int] = mapped_column(
        ForeignKey("payment_requests.id", use_alter=True),
        nullable=False,
        index=True,
        comment="Bill this payment settled",
    )
    gateway_reference: Mapped[str] = mapped_column(
        String(255), nullable=False, comment="Reference the client submitted for settlement"
    )
    external_transaction_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, comment="Transaction id reported by the gateway"
    )

    tenant_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    landlord_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    credit_applied: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00"), nullable=False
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(nullable=False)
    status: Mapped[RecordStatus] = mapped_column(default=RecordStatus.RECORDED, nullable=False)
    paid_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Snapshot of the settled bill for statements
    water_bill: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    electrical_bill: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    other_bills: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    bills_description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "payment_request_id", "gateway_reference", name="uq_payment_record_settlement"
        ),
        Index("idx_payment_record_tenant_paid", "tenant_id", "paid_at"),
        Index("idx_payment_record_landlord_paid", "landlord_id", "paid_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<PaymentRecord(id={self.id}, payment_request_id={self.payment_request_id}, "
            f"amount={self.amount}, method={self.method})>"
        )


__all__ = ["PaymentRecord", "RecordStatus"]
