"""Payment gateway verifiers."""

from typing import Dict

from rentledger.config import Settings
from rentledger.models.payment_request import PaymentMethod
from rentledger.services.gateways.base import Gateway, VerificationResult
from rentledger.services.gateways.credit import CREDIT_REFERENCE, CreditGateway
from rentledger.services.gateways.paymongo import PayMongoGateway
from rentledger.services.gateways.paypal import PayPalGateway
from rentledger.services.gateways.stripe_gateway import StripeGateway


def build_gateways(settings: Settings) -> Dict[PaymentMethod, Gateway]:
    """Create the external gateway verifiers from settings.

    Credit is session-bound and is added by the settlement service itself.
    """
    timeout = settings.gateway_timeout_seconds
    return {
        PaymentMethod.STRIPE: StripeGateway.from_credentials(settings.stripe_secret_key, timeout),
        PaymentMethod.PAYMONGO: PayMongoGateway(
            settings.paymongo_secret_key,
            base_url=settings.paymongo_api_url,
            timeout=timeout,
        ),
        PaymentMethod.PAYPAL: PayPalGateway(
            settings.paypal_client_id,
            settings.paypal_client_secret,
            base_url=settings.paypal_api_url,
            timeout=timeout,
        ),
    }


__all__ = [
    "CREDIT_REFERENCE",
    "CreditGateway",
    "Gateway",
    "PayMongoGateway",
    "PayPalGateway",
    "StripeGateway",
    "VerificationResult",
    "build_gateways",
]
