"""FastAPI dependencies shared by the routers."""

from functools import lru_cache
from typing import Dict

from rentledger.config import get_settings
from rentledger.models.payment_request import PaymentMethod
from rentledger.services.gateways import Gateway, build_gateways
from rentledger.services.notification_service import PaymentNotifier, get_payment_notifier


@lru_cache
def _configured_gateways() -> Dict[PaymentMethod, Gateway]:
    return build_gateways(get_settings())


def get_gateways() -> Dict[PaymentMethod, Gateway]:
    """External gateway verifiers built once from settings."""
    return _configured_gateways()


def get_notifier() -> PaymentNotifier:
    """Notifier used for post-settlement messages."""
    return get_payment_notifier()


__all__ = ["get_gateways", "get_notifier"]
