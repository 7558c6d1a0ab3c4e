"""PayPal order capture verification.

Capturing is not idempotent at PayPal: a second capture of the same order
answers 422 ORDER_ALREADY_CAPTURED. That answer is treated as success and
the existing capture is read back from the order.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from rentledger.models.payment_request import PaymentMethod, PaymentRequest
from rentledger.services.errors import (
    GatewayTimeoutError,
    GatewayVerificationFailed,
    PaymentNotCompletedError,
)
from rentledger.services.gateways.base import MALFORMED_PAYLOAD_ERRORS, Gateway, VerificationResult
from rentledger.services.money import to_money

logger = logging.getLogger(__name__)

ALREADY_CAPTURED_ISSUE = "ORDER_ALREADY_CAPTURED"


class PayPalGateway(Gateway):
    """Capture an approved PayPal order and verify the capture completed."""

    method = PaymentMethod.PAYPAL

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        base_url: str = "https://api-m.sandbox.paypal.com",
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize PayPal gateway.

        Args:
            client_id: REST app client id
            client_secret: REST app secret
            base_url: Sandbox or live API root
            timeout: Seconds before any request is abandoned
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = httpx.Timeout(timeout)
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    def get_access_token(self, client: httpx.Client) -> str:
        """Exchange client credentials for an OAuth access token."""
        response = client.post(
            "/v1/oauth2/token",
            auth=(self.client_id, self.client_secret),
            data={"grant_type": "client_credentials"},
        )
        if response.is_error:
            logger.error(f"PayPal token request failed ({response.status_code})")
            raise GatewayVerificationFailed("PayPal authentication failed")
        try:
            token = response.json().get("access_token")
        except MALFORMED_PAYLOAD_ERRORS as e:
            raise GatewayVerificationFailed("PayPal returned an unreadable token response") from e
        if not token:
            raise GatewayVerificationFailed("PayPal returned no access token")
        return token

    def verify(self, reference: str, bill: PaymentRequest) -> VerificationResult:
        try:
            with self._client() as client:
                token = self.get_access_token(client)
                headers = {"Authorization": f"Bearer {token}"}

                response = client.post(
                    f"/v2/checkout/orders/{reference}/capture",
                    headers=headers,
                    json={},
                )
                if response.status_code == 422 and _issue(response) == ALREADY_CAPTURED_ISSUE:
                    logger.info(f"PayPal order {reference} already captured, reading existing capture")
                    response = client.get(f"/v2/checkout/orders/{reference}", headers=headers)
        except httpx.TimeoutException as e:
            logger.error(f"PayPal timed out for order {reference}: {e}")
            raise GatewayTimeoutError("PayPal did not respond in time") from e
        except httpx.HTTPError as e:
            logger.error(f"PayPal request for order {reference} failed: {e}")
            raise GatewayVerificationFailed(f"PayPal request failed: {e}") from e

        if response.is_error:
            message = _error_message(response) or "Failed to capture PayPal order"
            logger.warning(f"PayPal capture of {reference} failed ({response.status_code}): {message}")
            raise GatewayVerificationFailed(message)

        try:
            return self._read_capture(reference, response)
        except MALFORMED_PAYLOAD_ERRORS as e:
            logger.error(f"PayPal answered order {reference} with an unexpected payload: {e!r}")
            raise GatewayVerificationFailed("PayPal returned an unexpected response") from e

    def _read_capture(self, reference: str, response: httpx.Response) -> VerificationResult:
        capture = _first_capture(response.json())
        if capture is None or capture.get("status") != "COMPLETED":
            status = capture.get("status") if capture else "missing"
            logger.info(f"PayPal order {reference} capture status is {status}")
            raise PaymentNotCompletedError("PayPal capture not completed")

        return VerificationResult(
            # PayPal reports decimal strings ("5500.00"), not minor units
            amount_paid=to_money(capture["amount"]["value"]),
            external_transaction_id=capture["id"],
            gateway_status=capture["status"],
        )


def _issue(response: httpx.Response) -> Optional[str]:
    try:
        return response.json()["details"][0]["issue"]
    except MALFORMED_PAYLOAD_ERRORS:
        return None


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        return response.json().get("message")
    except MALFORMED_PAYLOAD_ERRORS:
        return None


def _first_capture(order: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    units = order.get("purchase_units") or []
    if not units:
        return None
    captures = (units[0].get("payments") or {}).get("captures") or []
    return captures[0] if captures else None


__all__ = ["PayPalGateway"]
