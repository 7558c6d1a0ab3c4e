"""Stripe payment intent verification."""

import logging

import stripe

from rentledger.models.payment_request import PaymentMethod, PaymentRequest
from rentledger.services.errors import (
    GatewayTimeoutError,
    GatewayVerificationFailed,
    PaymentNotCompletedError,
)
from rentledger.services.gateways.base import Gateway, VerificationResult
from rentledger.services.money import from_minor_units

logger = logging.getLogger(__name__)


class StripeGateway(Gateway):
    """Verify a Stripe PaymentIntent by id. Only `succeeded` intents settle."""

    method = PaymentMethod.STRIPE

    def __init__(self, client: stripe.StripeClient):
        """Initialize with a configured Stripe client.

        Args:
            client: StripeClient (tests pass a mock)
        """
        self.client = client

    @classmethod
    def from_credentials(cls, secret_key: str, timeout: float) -> "StripeGateway":
        """Build a gateway whose HTTP calls give up after `timeout` seconds."""
        client = stripe.StripeClient(
            secret_key,
            http_client=stripe.RequestsClient(timeout=timeout),
        )
        return cls(client)

    def verify(self, reference: str, bill: PaymentRequest) -> VerificationResult:
        try:
            intent = self.client.payment_intents.retrieve(reference)
        except stripe.APIConnectionError as e:
            logger.error(f"Stripe unreachable while retrieving {reference}: {e}")
            raise GatewayTimeoutError(f"Stripe did not respond: {e.user_message or e}") from e
        except stripe.InvalidRequestError as e:
            logger.warning(f"Stripe rejected payment intent lookup {reference}: {e}")
            raise GatewayVerificationFailed(f"Stripe payment intent {reference} not found") from e
        except stripe.StripeError as e:
            logger.error(f"Stripe error while retrieving {reference}: {e}")
            raise GatewayVerificationFailed(f"Stripe verification failed: {e}") from e

        if intent.status != "succeeded":
            logger.info(f"Stripe payment intent {reference} has status {intent.status}")
            raise PaymentNotCompletedError("Payment not succeeded")

        return VerificationResult(
            amount_paid=from_minor_units(intent.amount),
            external_transaction_id=intent.id,
            gateway_status=intent.status,
        )


__all__ = ["StripeGateway"]
