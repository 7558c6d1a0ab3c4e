"""Occupancy ORM model: the tenancy scoping bills and balances."""

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rentledger.models import Base, BaseModel


class Occupancy(Base, BaseModel):
    """Tenancy relationship between a tenant and a unit of a landlord's property.

    Bills and tenant balances are scoped to an occupancy. Renewal flags are
    cleared once a renewal bill with advance months has been settled so the
    next renewal cycle can start.
    """

    __tablename__ = "occupancies"

    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True, comment="Occupying tenant"
    )
    landlord_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True, comment="Property owner"
    )
    property_id: Mapped[int] = mapped_column(
        nullable=False, index=True, comment="Property (listing) identifier"
    )
    status: Mapped[str] = mapped_column(
        String(30), default="active", nullable=False, comment="active, pending_end, ended"
    )
    renewal_status: Mapped[str | None] = mapped_column(
        String(30), nullable=True, comment="Renewal workflow state (pending, approved, ...)"
    )
    renewal_requested: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, comment="Tenant asked to renew"
    )

    tenant: Mapped["User"] = relationship("User", foreign_keys=[tenant_id])  # noqa: F821
    landlord: Mapped["User"] = relationship("User", foreign_keys=[landlord_id])  # noqa: F821

    __table_args__ = (Index("idx_occupancy_tenant_property", "tenant_id", "property_id"),)

    def __repr__(self) -> str:
        return (
            f"<Occupancy(id={self.id}, tenant_id={self.tenant_id}, "
            f"property_id={self.property_id}, status={self.status})>"
        )


__all__ = ["Occupancy"]
