"""Bill lookup and totals."""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from rentledger.models.payment_request import PaymentRequest
from rentledger.services.errors import NotFoundError
from rentledger.services.money import ZERO, to_money


def request_total(bill: PaymentRequest) -> Decimal:
    """Sum of every line item; missing items count as zero."""
    return to_money(sum(bill.line_items().values(), ZERO))


class BillResolver:
    """Load bills by id. Read-only."""

    def __init__(self, db: Session):
        self.db = db

    def resolve(self, payment_request_id: int, for_update: bool = False) -> PaymentRequest:
        """Load a bill.

        Args:
            payment_request_id: Bill id
            for_update: Lock the row until the transaction ends (ignored on SQLite)

        Raises:
            NotFoundError: If no bill has this id
        """
        stmt = select(PaymentRequest).where(PaymentRequest.id == payment_request_id)
        if for_update:
            stmt = stmt.with_for_update()
        bill = self.db.execute(stmt).scalar_one_or_none()
        if bill is None:
            raise NotFoundError("Payment request not found")
        return bill


__all__ = ["BillResolver", "request_total"]
