"""Settlement of bills against verified payments.

Provides:
- One entry point for every gateway (Stripe, PayMongo, PayPal, stored credit)
- Excess/deficit reconciliation against the tenant's stored balance
- Ledger entry creation and bill status update
- Advance bill materialization
- Notification messages for tenant and landlord (dispatched by the caller)

Ordering: the gateway is asked before anything is written. All writes of one
settlement commit together or not at all.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from rentledger.models.payment_record import PaymentRecord, RecordStatus
from rentledger.models.payment_request import BillStatus, PaymentMethod, PaymentRequest
from rentledger.services.advance_scheduler import AdvanceScheduler
from rentledger.services.audit_service import AuditService
from rentledger.services.balance_ledger import BalanceLedger
from rentledger.services.bill_resolver import BillResolver, request_total
from rentledger.services.errors import (
    AlreadySettledError,
    SettlementError,
    StoreError,
    ValidationError,
)
from rentledger.services.gateways.base import Gateway, VerificationResult
from rentledger.services.gateways.credit import CreditGateway
from rentledger.services.money import ZERO, format_money, to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingNotification:
    """Message to deliver once the settlement has committed."""

    recipient: str  # "tenant" or "landlord"
    user_id: int
    message: str


@dataclass
class SettlementResult:
    """Outcome of a settlement request."""

    success: bool
    excess_amount: Decimal
    payment_record_id: Optional[int] = None
    balance: Decimal = ZERO
    advance_bill_ids: list[int] = field(default_factory=list)
    already_processed: bool = False
    notifications: list[PendingNotification] = field(default_factory=list)


class SettlementService:
    """Reconcile verified payments against bills."""

    def __init__(
        self,
        db: Session,
        gateways: Mapping[PaymentMethod, Gateway],
        currency: str = "PHP",
    ):
        """Initialize settlement service.

        Args:
            db: SQLAlchemy session; the service commits or rolls it back
            gateways: External verifiers by method; credit is added automatically
            currency: Settlement currency recorded on ledger entries
        """
        self.db = db
        self.currency = currency
        self.resolver = BillResolver(db)
        self.ledger = BalanceLedger(db)
        self.scheduler = AdvanceScheduler(db)
        self.gateways: dict[PaymentMethod, Gateway] = {
            PaymentMethod.CREDIT: CreditGateway(self.ledger),
            **gateways,
        }

    def settle(
        self,
        payment_request_id: Optional[int],
        gateway: PaymentMethod | str | None,
        reference: Optional[str],
    ) -> SettlementResult:
        """Settle a bill with a payment confirmed by `gateway`.

        Args:
            payment_request_id: Bill to settle
            gateway: Payment method (enum or its value, e.g. "paymongo")
            reference: Intent/link/session/order id, or the tenant id for credit

        Returns:
            SettlementResult (already_processed=True for replays)

        Raises:
            ValidationError: Missing or invalid input (nothing read or written)
            NotFoundError: Bill does not exist
            GatewayVerificationFailed: Payment not confirmed (nothing written)
            StoreError: Database failure (everything rolled back)
        """
        method = self._validate(payment_request_id, gateway, reference)
        reference = reference.strip()
        verifier = self.gateways.get(method)
        if verifier is None:
            raise ValidationError(f"Gateway {method.value} is not configured")

        try:
            bill = self.resolver.resolve(payment_request_id, for_update=True)

            if bill.status == BillStatus.PAID:
                if bill.payment_method == method:
                    logger.info(f"Bill {bill.id} already settled via {method.value}, skipping")
                    self.db.rollback()
                    return self._replay_result(bill)
                paid_via = bill.payment_method.label if bill.payment_method else "another method"
                logger.error(
                    f"Bill {bill.id} already settled via {paid_via}, "
                    f"rejecting {method.value} reference {reference}"
                )
                raise AlreadySettledError(f"Payment request already settled via {paid_via}")

            verification = verifier.verify(reference, bill)
            logger.info(
                f"Verified {method.value} payment {verification.external_transaction_id} "
                f"of {verification.amount_paid} for bill {bill.id}"
            )

            result = self._apply(bill, method, reference, verification)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            bill = self.resolver.resolve(payment_request_id)
            if bill.status != BillStatus.PAID:
                logger.error(f"Settlement of bill {payment_request_id} violated a constraint: {e}")
                raise StoreError("Failed to record settlement") from e
            logger.info(f"Concurrent settlement of bill {payment_request_id} detected, replaying")
            return self._replay_result(bill)
        except SettlementError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Settlement of bill {payment_request_id} rolled back: {e}")
            raise StoreError("Failed to record settlement") from e

        logger.info(
            f"Settled bill {payment_request_id} via {method.value}: record "
            f"{result.payment_record_id}, excess {result.excess_amount}, "
            f"{len(result.advance_bill_ids)} advance bill(s)"
        )
        return result

    def _validate(
        self,
        payment_request_id: Optional[int],
        gateway: PaymentMethod | str | None,
        reference: Optional[str],
    ) -> PaymentMethod:
        if not payment_request_id or payment_request_id < 1:
            raise ValidationError("Missing required fields: paymentRequestId")
        if not reference or not reference.strip():
            raise ValidationError("Missing required fields: reference")
        if not gateway:
            raise ValidationError("Missing required fields: gateway")
        try:
            return PaymentMethod(gateway)
        except ValueError:
            raise ValidationError(f"Unsupported gateway: {gateway}")

    def _apply(
        self,
        bill: PaymentRequest,
        method: PaymentMethod,
        reference: str,
        verification: VerificationResult,
    ) -> SettlementResult:
        amount_paid = to_money(verification.amount_paid)
        total = request_total(bill)
        excess = amount_paid - total

        credit_applied = ZERO
        if bill.occupancy_id is None:
            balance = ZERO
        elif excess > ZERO:
            balance = self.ledger.apply_delta(bill.tenant_id, bill.occupancy_id, excess)
        elif excess < ZERO:
            # Credit payments must be covered in full by the balance at draw time
            credit_applied, balance = self.ledger.draw(
                bill.tenant_id,
                bill.occupancy_id,
                -excess,
                allow_partial=method != PaymentMethod.CREDIT,
            )
        else:
            balance = self.ledger.get_balance(bill.tenant_id, bill.occupancy_id)
        if excess > ZERO and bill.occupancy_id is not None:
            change = excess
        else:
            change = ZERO - credit_applied

        now = datetime.now(timezone.utc)
        record = PaymentRecord(
            payment_request_id=bill.id,
            gateway_reference=reference,
            external_transaction_id=verification.external_transaction_id,
            tenant_id=bill.tenant_id,
            landlord_id=bill.landlord_id,
            property_id=bill.property_id,
            amount=amount_paid,
            credit_applied=credit_applied,
            currency=self.currency,
            method=method,
            status=RecordStatus.RECORDED,
            paid_at=now,
            water_bill=bill.water_bill,
            electrical_bill=bill.electrical_bill,
            other_bills=bill.other_bills,
            bills_description=bill.description,
        )
        self.db.add(record)
        self.db.flush()

        label = method.label
        bill.status = BillStatus.PAID
        bill.paid_at = now
        bill.payment_method = method
        bill.tenant_reference_number = verification.external_transaction_id
        bill.payment_id = record.id
        bill.description = (
            f"{bill.description} (Via {label})" if bill.description else f"Payment (Via {label})"
        )

        advance_bills = []
        if to_money(bill.rent_amount) > ZERO and not bill.is_move_in_payment:
            advance_bills = self.scheduler.schedule(bill, record.id)

        AuditService.log(
            self.db,
            entity_type="payment_request",
            entity_id=bill.id,
            action="settle",
            changes={
                "method": method.value,
                "payment_record_id": record.id,
                "amount_paid": amount_paid,
                "request_total": total,
                "balance_change": change,
            },
        )

        settled = amount_paid + record.credit_applied
        txid = verification.external_transaction_id
        notifications = [
            PendingNotification(
                recipient="tenant",
                user_id=bill.tenant_id,
                message=(
                    f"Payment of {format_money(settled, self.currency)} for bill #{bill.id} "
                    f"received (Via {label}). Transaction ID: {txid}"
                ),
            ),
            PendingNotification(
                recipient="landlord",
                user_id=bill.landlord_id,
                message=(
                    f"Tenant paid {format_money(settled, self.currency)} for bill #{bill.id} "
                    f"via {label} (Transaction: {txid})."
                ),
            ),
        ]

        return SettlementResult(
            success=True,
            excess_amount=max(excess, ZERO),
            payment_record_id=record.id,
            balance=balance,
            advance_bill_ids=[b.id for b in advance_bills],
            notifications=notifications,
        )

    def _replay_result(self, bill: PaymentRequest) -> SettlementResult:
        record_id = bill.payment_id
        if record_id is None:
            record_id = self.db.execute(
                select(PaymentRecord.id).where(PaymentRecord.payment_request_id == bill.id)
            ).scalar_one_or_none()
        return SettlementResult(
            success=True,
            excess_amount=ZERO,
            payment_record_id=record_id,
            balance=self.ledger.get_balance(bill.tenant_id, bill.occupancy_id),
            already_processed=True,
        )


__all__ = [
    "PendingNotification",
    "SettlementResult",
    "SettlementService",
]
