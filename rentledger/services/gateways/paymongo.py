"""PayMongo payment link and checkout session verification.

A settlement reference starting with `cs_` is a checkout session; anything
else is treated as a payment link.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from rentledger.models.payment_request import PaymentMethod, PaymentRequest
from rentledger.services.errors import (
    GatewayTimeoutError,
    GatewayVerificationFailed,
    PaymentNotCompletedError,
)
from rentledger.services.gateways.base import MALFORMED_PAYLOAD_ERRORS, Gateway, VerificationResult
from rentledger.services.money import from_minor_units

logger = logging.getLogger(__name__)

CHECKOUT_SESSION_PREFIX = "cs_"


class PayMongoGateway(Gateway):
    """Verify PayMongo links (`/links/{id}`) and checkout sessions."""

    method = PaymentMethod.PAYMONGO

    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.paymongo.com/v1",
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize PayMongo gateway.

        Args:
            secret_key: PayMongo secret key (HTTP basic auth username)
            base_url: API root
            timeout: Seconds before any request is abandoned
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = httpx.Timeout(timeout)
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            auth=(self.secret_key, ""),
            headers={"accept": "application/json"},
            timeout=self.timeout,
            transport=self.transport,
        )

    def _get(self, path: str) -> Dict[str, Any]:
        try:
            with self._client() as client:
                response = client.get(path)
        except httpx.TimeoutException as e:
            logger.error(f"PayMongo timed out on {path}: {e}")
            raise GatewayTimeoutError("PayMongo did not respond in time") from e
        except httpx.HTTPError as e:
            logger.error(f"PayMongo request to {path} failed: {e}")
            raise GatewayVerificationFailed(f"PayMongo request failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise GatewayVerificationFailed(
                f"PayMongo returned an unreadable response ({response.status_code})"
            ) from e

        errors = body.get("errors")
        if errors or response.is_error:
            detail = (errors or [{}])[0].get("detail") or "PayMongo Verification Failed"
            logger.warning(f"PayMongo error on {path} ({response.status_code}): {detail}")
            raise GatewayVerificationFailed(detail)
        return body

    def verify(self, reference: str, bill: PaymentRequest) -> VerificationResult:
        try:
            if reference.startswith(CHECKOUT_SESSION_PREFIX):
                return self._verify_checkout_session(reference)
            return self._verify_link(reference)
        except MALFORMED_PAYLOAD_ERRORS as e:
            logger.error(f"PayMongo answered {reference} with an unexpected payload: {e!r}")
            raise GatewayVerificationFailed("PayMongo returned an unexpected response") from e

    def _verify_link(self, link_id: str) -> VerificationResult:
        link = self._get(f"/links/{link_id}").get("data") or {}
        attributes = link.get("attributes") or {}

        if attributes.get("status") != "paid":
            raise PaymentNotCompletedError("Payment not paid yet.")

        payments = [p.get("data") or p for p in attributes.get("payments") or []]
        payment = _first_paid(payments) or (payments[0] if payments else None)

        if payment is not None:
            payment_attributes = payment.get("attributes") or {}
            amount = payment_attributes.get("amount")
            payment_id = payment.get("id")
        else:
            # Paid link whose payments are not populated yet
            logger.info(f"PayMongo link {link_id} is paid but lists no payments, using link amount")
            payment_attributes = {}
            amount = attributes.get("amount")
            payment_id = link.get("id") or link_id

        if amount is None:
            raise GatewayVerificationFailed(f"PayMongo link {link_id} reports no amount")

        # Order matters: this is the reference number the landlord sees
        transaction_id = (
            payment_attributes.get("external_reference_number")
            or attributes.get("reference_number")
            or payment_id
        )

        return VerificationResult(
            amount_paid=from_minor_units(amount),
            external_transaction_id=str(transaction_id),
            gateway_status=attributes["status"],
        )

    def _verify_checkout_session(self, session_id: str) -> VerificationResult:
        session = self._get(f"/checkout_sessions/{session_id}").get("data") or {}
        payments = (session.get("attributes") or {}).get("payments") or []

        payment = _first_paid(payments)
        if payment is None:
            raise PaymentNotCompletedError("Payment not verified or not paid.")

        return VerificationResult(
            amount_paid=from_minor_units(payment["attributes"]["amount"]),
            external_transaction_id=payment["id"],
            gateway_status=payment["attributes"]["status"],
        )


def _first_paid(payments: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    for payment in payments:
        if (payment.get("attributes") or {}).get("status") == "paid":
            return payment
    return None


__all__ = ["PayMongoGateway"]
