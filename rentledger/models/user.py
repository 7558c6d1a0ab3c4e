"""User ORM model for tenants and landlords."""

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from rentledger.models import Base, BaseModel


class User(Base, BaseModel):
    """
    Person taking part in a rental: a tenant, a landlord, or both.

    Only the fields the billing engine needs are kept here: a display name for
    messages and the Telegram chat used to deliver payment notifications.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Full name used in notifications",
    )
    telegram_id: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        index=True,
        comment="Telegram chat ID for notifications (nullable until linked)",
    )
    phone: Mapped[str | None] = mapped_column(
        String(50), nullable=True, comment="Contact phone number"
    )

    # Role flags (independent - user can have multiple roles)
    is_tenant: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, comment="User rents a unit"
    )
    is_landlord: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, comment="User owns and lets units"
    )

    __table_args__ = (Index("idx_user_telegram_id", "telegram_id"),)

    def __repr__(self) -> str:
        roles = []
        if self.is_tenant:
            roles.append("tenant")
        if self.is_landlord:
            roles.append("landlord")
        role_str = ",".join(roles) if roles else "none"
        return f"<User(id={self.id}, name={self.name}, roles=[{role_str}])>"


__all__ = ["User"]
