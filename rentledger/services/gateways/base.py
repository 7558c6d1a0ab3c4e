"""Gateway verifier interface.

A gateway verifier turns the opaque reference a client submits after paying
(payment intent id, link/session id, order id, tenant id for credit) into
the amount the gateway authoritatively reports as paid.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from rentledger.models.payment_request import PaymentMethod, PaymentRequest

# Raised while reading a gateway answer of an unexpected shape
MALFORMED_PAYLOAD_ERRORS = (ValueError, KeyError, IndexError, TypeError, AttributeError)


@dataclass(frozen=True)
class VerificationResult:
    """Verified payment as reported by the gateway. Consumed once, never stored."""

    amount_paid: Decimal
    external_transaction_id: str
    gateway_status: str
    verified: bool = True


class Gateway(ABC):
    """Abstract base class for payment verification."""

    method: PaymentMethod

    @abstractmethod
    def verify(self, reference: str, bill: PaymentRequest) -> VerificationResult:
        """Confirm a payment with the gateway.

        Args:
            reference: Settlement reference submitted by the client
            bill: Bill being settled (read-only context)

        Returns:
            VerificationResult for a successful payment

        Raises:
            GatewayVerificationFailed: If the payment is unknown, not successful,
                or the gateway could not be reached in time
        """


__all__ = ["Gateway", "MALFORMED_PAYLOAD_ERRORS", "VerificationResult"]
