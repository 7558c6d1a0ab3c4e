"""Read-side queries over the payment ledger."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from rentledger.models.payment_record import PaymentRecord
from rentledger.services.errors import ValidationError


def list_payment_records(
    db: Session,
    tenant_id: Optional[int] = None,
    landlord_id: Optional[int] = None,
    limit: int = 100,
) -> List[PaymentRecord]:
    """Ledger entries for a tenant and/or landlord, newest first.

    Raises:
        ValidationError: If neither tenant_id nor landlord_id is given
    """
    if tenant_id is None and landlord_id is None:
        raise ValidationError("tenant_id or landlord_id is required")

    stmt = select(PaymentRecord)
    if tenant_id is not None:
        stmt = stmt.where(PaymentRecord.tenant_id == tenant_id)
    if landlord_id is not None:
        stmt = stmt.where(PaymentRecord.landlord_id == landlord_id)
    stmt = stmt.order_by(PaymentRecord.paid_at.desc(), PaymentRecord.id.desc()).limit(limit)
    return list(db.execute(stmt).scalars())


__all__ = ["list_payment_records"]
