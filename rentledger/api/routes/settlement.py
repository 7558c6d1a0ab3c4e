"""Settlement API routes."""

import logging
from typing import Dict

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from rentledger.api.dependencies import get_gateways, get_notifier
from rentledger.config import get_settings
from rentledger.models.payment_request import PaymentMethod
from rentledger.schemas.settlement import SettlePayload, SettlementResponse
from rentledger.services import get_db
from rentledger.services.gateways import Gateway
from rentledger.services.notification_service import PaymentNotifier, dispatch_notifications
from rentledger.services.settlement_service import SettlementService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/settle", response_model=SettlementResponse, status_code=status.HTTP_200_OK)
def settle_payment(
    payload: SettlePayload,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    gateways: Dict[PaymentMethod, Gateway] = Depends(get_gateways),
    notifier: PaymentNotifier = Depends(get_notifier),
) -> SettlementResponse:
    """
    Settle a bill with a payment confirmed by a gateway.

    Returns:
        200: SettlementResponse (alreadyProcessed=true for replays)
        400: Missing fields, unsupported gateway, payment not completed, insufficient credit
        404: Bill not found
        409: Bill already settled through another gateway
        500: Gateway or store failure
        504: Gateway timeout
    """
    service = SettlementService(db, gateways, currency=get_settings().settlement_currency)
    result = service.settle(payload.payment_request_id, payload.gateway, payload.reference)

    if result.notifications:
        # Runs after the response is sent; failures are logged only
        background_tasks.add_task(dispatch_notifications, notifier, result.notifications)

    return SettlementResponse.model_validate(result)
