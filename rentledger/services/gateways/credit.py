"""Settlement from the tenant's stored credit balance."""

import logging

from rentledger.models.payment_request import PaymentMethod, PaymentRequest
from rentledger.services.balance_ledger import BalanceLedger
from rentledger.services.bill_resolver import request_total
from rentledger.services.errors import InsufficientCreditError, ValidationError
from rentledger.services.gateways.base import Gateway, VerificationResult
from rentledger.services.money import ZERO

logger = logging.getLogger(__name__)

CREDIT_REFERENCE = "CREDIT_APPLIED"


class CreditGateway(Gateway):
    """Pay a bill entirely from stored credit.

    No money arrives from outside: the result reports zero paid, and the
    settlement's deficit handling draws the full bill total from the balance.
    The reference is the id of the tenant paying.
    """

    method = PaymentMethod.CREDIT

    def __init__(self, ledger: BalanceLedger):
        self.ledger = ledger

    def verify(self, reference: str, bill: PaymentRequest) -> VerificationResult:
        if str(bill.tenant_id) != reference.strip():
            raise ValidationError("Credit can only be applied by the billed tenant")
        if bill.occupancy_id is None:
            raise ValidationError("Credit can only be applied to bills with an occupancy")

        balance = self.ledger.get_balance(bill.tenant_id, bill.occupancy_id)
        total = request_total(bill)
        if balance < total:
            logger.info(
                f"Credit {balance} insufficient for bill {bill.id} total {total} "
                f"(tenant {bill.tenant_id})"
            )
            raise InsufficientCreditError("Insufficient credit balance")

        return VerificationResult(
            amount_paid=ZERO,
            external_transaction_id=CREDIT_REFERENCE,
            gateway_status="applied",
        )


__all__ = ["CREDIT_REFERENCE", "CreditGateway"]
