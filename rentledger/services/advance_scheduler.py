"""Advance payment scheduling.

When a bill's advance amount covers whole months of rent, each covered month
is materialized as its own already-paid bill so the tenant is not billed
for it again. Move-in advances are deposits and never prepay months.
"""

import calendar
import logging
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from rentledger.models.occupancy import Occupancy
from rentledger.models.payment_request import BillStatus, PaymentRequest
from rentledger.services.audit_service import AuditService
from rentledger.services.money import ZERO, to_money

logger = logging.getLogger(__name__)


def add_months_preserving_day(start: date, months: int) -> date:
    """Move a date by whole calendar months, keeping its day of month.

    The year rolls with the month index (negative offsets included). When
    the target month is shorter than the start day, the result is clamped to
    that month's last day: Dec 31 + 2 months is Feb 28 (Feb 29 in leap years).
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def extra_months(bill: PaymentRequest) -> int:
    """Number of whole future months the bill's advance amount prepays."""
    if bill.is_move_in_payment:
        return 0
    rent = to_money(bill.rent_amount)
    advance = to_money(bill.advance_amount)
    if rent <= ZERO or advance <= ZERO:
        return 0
    return int(advance // rent)


class AdvanceScheduler:
    """Create prepaid bills for the months covered by an advance payment."""

    def __init__(self, db: Session):
        self.db = db

    def schedule(self, bill: PaymentRequest, payment_record_id: int) -> list[PaymentRequest]:
        """Materialize the prepaid months of a just-settled bill.

        Safe to re-run: a month whose advance bill already exists for the same
        occupancy and due date is skipped. Does not commit.

        Args:
            bill: Settled bill carrying rent and advance amounts
            payment_record_id: Ledger entry the prepaid bills point to

        Returns:
            Newly created bills (existing months excluded)
        """
        months = extra_months(bill)
        if months == 0 or bill.occupancy_id is None:
            return []

        monthly_rent = to_money(bill.rent_amount)
        label = bill.payment_method.label if bill.payment_method else "Unknown"
        now = datetime.now(timezone.utc)
        created: list[PaymentRequest] = []

        for i in range(1, months + 1):
            due_date = add_months_preserving_day(bill.due_date, i)
            if self._advance_bill_exists(bill.occupancy_id, due_date):
                logger.info(
                    f"Advance bill for occupancy {bill.occupancy_id} due {due_date} exists, skipping"
                )
                continue

            advance_bill = PaymentRequest(
                tenant_id=bill.tenant_id,
                landlord_id=bill.landlord_id,
                property_id=bill.property_id,
                occupancy_id=bill.occupancy_id,
                due_date=due_date,
                rent_amount=monthly_rent,
                advance_amount=ZERO,
                security_deposit_amount=ZERO,
                water_bill=ZERO,
                electrical_bill=ZERO,
                wifi_bill=ZERO,
                other_bills=ZERO,
                description=f"Advance Payment (Month {i + 1} of {months + 1}) - via {label}",
                status=BillStatus.PAID,
                paid_at=now,
                payment_method=bill.payment_method,
                tenant_reference_number=bill.tenant_reference_number,
                payment_id=payment_record_id,
                is_advance_payment=True,
                advance_source_id=bill.id,
            )
            self.db.add(advance_bill)
            created.append(advance_bill)

        if created:
            self.db.flush()
            for advance_bill in created:
                AuditService.log(
                    self.db,
                    entity_type="payment_request",
                    entity_id=advance_bill.id,
                    action="create_advance",
                    changes={"source_id": bill.id, "due_date": advance_bill.due_date.isoformat()},
                )
            logger.info(f"Created {len(created)} advance bill(s) from bill {bill.id}")

        if bill.is_renewal_payment:
            self._reset_renewal(bill.occupancy_id)

        return created

    def _advance_bill_exists(self, occupancy_id: int, due_date: date) -> bool:
        existing = self.db.execute(
            select(PaymentRequest.id).where(
                PaymentRequest.occupancy_id == occupancy_id,
                PaymentRequest.due_date == due_date,
                PaymentRequest.is_advance_payment.is_(True),
            )
        ).first()
        return existing is not None

    def _reset_renewal(self, occupancy_id: int) -> None:
        occupancy = self.db.get(Occupancy, occupancy_id)
        if occupancy is None:
            logger.warning(f"Occupancy {occupancy_id} not found, renewal flags left as is")
            return
        occupancy.renewal_status = None
        occupancy.renewal_requested = False
        logger.info(f"Cleared renewal flags on occupancy {occupancy_id}")


__all__ = ["AdvanceScheduler", "add_months_preserving_day", "extra_months"]
