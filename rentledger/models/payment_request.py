"""PaymentRequest ORM model: one billing period's charges owed by a tenant."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rentledger.models import Base, BaseModel


class BillStatus(str, Enum):
    """Lifecycle of a bill."""

    PENDING = "pending"
    """Issued, nothing received yet"""

    PENDING_CONFIRMATION = "pending_confirmation"
    """Tenant reported a manual payment, landlord has not confirmed it"""

    PAID = "paid"
    """Settled; immutable from here on except for the description"""


class PaymentMethod(str, Enum):
    """Ways a bill can be settled."""

    STRIPE = "stripe"
    PAYMONGO = "paymongo"
    PAYPAL = "paypal"
    CREDIT = "credit_balance"

    @property
    def label(self) -> str:
        """Display name used in descriptions and messages."""
        return {
            PaymentMethod.STRIPE: "Stripe",
            PaymentMethod.PAYMONGO: "PayMongo",
            PaymentMethod.PAYPAL: "PayPal",
            PaymentMethod.CREDIT: "Credit Balance",
        }[self]


# Line item columns summed into a bill's total, in display order
LINE_ITEM_FIELDS = (
    "rent_amount",
    "advance_amount",
    "security_deposit_amount",
    "water_bill",
    "electrical_bill",
    "wifi_bill",
    "other_bills",
)


class PaymentRequest(Base, BaseModel):
    """
    A bill issued by a landlord to a tenant for one billing period.

    Created by upstream billing or, for prepaid months, by the advance
    scheduler. Settled exactly once; after that only the description may
    change.
    """

    __tablename__ = "payment_requests"

    # Parties
    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True, comment="Billed tenant"
    )
    landlord_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True, comment="Receiving landlord"
    )
    property_id: Mapped[int] = mapped_column(
        nullable=False, index=True, comment="Property (listing) identifier"
    )
    occupancy_id: Mapped[int | None] = mapped_column(
        ForeignKey("occupancies.id"),
        nullable=True,
        index=True,
        comment="Tenancy this bill belongs to (null for one-off bills)",
    )

    due_date: Mapped[date] = mapped_column(Date, nullable=False, comment="Payment due date")

    # Line items (nullable: missing items count as zero)
    rent_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    advance_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    security_deposit_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    water_bill: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    electrical_bill: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    wifi_bill: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    other_bills: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    description: Mapped[str | None] = mapped_column(
        String(500), nullable=True, comment="Human readable bill description"
    )

    # Settlement state
    status: Mapped[BillStatus] = mapped_column(
        default=BillStatus.PENDING, nullable=False, index=True
    )
    payment_method: Mapped[PaymentMethod | None] = mapped_column(nullable=True)
    tenant_reference_number: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Reference shown to the landlord (gateway transaction id)",
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_id: Mapped[int | None] = mapped_column(
        ForeignKey("payment_records.id"),
        nullable=True,
        comment="Ledger entry that settled this bill",
    )

    # Flags
    is_move_in_payment: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_advance_payment: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_renewal_payment: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    advance_source_id: Mapped[int | None] = mapped_column(
        ForeignKey("payment_requests.id"),
        nullable=True,
        comment="Bill whose settlement materialized this prepaid bill",
    )

    # Relationships
    occupancy: Mapped["Occupancy | None"] = relationship(  # noqa: F821
        "Occupancy", foreign_keys=[occupancy_id]
    )
    payment: Mapped["PaymentRecord | None"] = relationship(  # noqa: F821
        "PaymentRecord", foreign_keys=[payment_id]
    )

    __table_args__ = (
        Index("idx_payment_request_tenant_status", "tenant_id", "status"),
        Index("idx_payment_request_occupancy_due", "occupancy_id", "due_date"),
    )

    def line_items(self) -> dict[str, Decimal]:
        """Return every monetary line item, missing ones as zero."""
        return {
            field: Decimal(getattr(self, field) or 0) for field in LINE_ITEM_FIELDS
        }

    @property
    def is_settled(self) -> bool:
        return self.status == BillStatus.PAID and self.payment_id is not None

    def __repr__(self) -> str:
        return (
            f"<PaymentRequest(id={self.id}, tenant_id={self.tenant_id}, "
            f"due_date={self.due_date}, status={self.status})>"
        )


__all__ = ["BillStatus", "LINE_ITEM_FIELDS", "PaymentMethod", "PaymentRequest"]
