"""Read-only balance, ledger and bill routes."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rentledger.schemas.settlement import (
    BalanceResponse,
    PaymentRecordResponse,
    PaymentRequestResponse,
)
from rentledger.services import get_db
from rentledger.services.balance_ledger import BalanceLedger
from rentledger.services.bill_resolver import BillResolver, request_total
from rentledger.services.payment_history import list_payment_records

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["ledger"])


@router.get("/balances/{tenant_id}", response_model=BalanceResponse)
def get_balance(
    tenant_id: int,
    occupancy_id: int | None = Query(None),
    db: Session = Depends(get_db),
) -> BalanceResponse:
    """Current stored credit of a tenant for an occupancy (0 when none)."""
    amount = BalanceLedger(db).get_balance(tenant_id, occupancy_id)
    return BalanceResponse(tenant_id=tenant_id, occupancy_id=occupancy_id, amount=amount)


@router.get("/payments/history", response_model=list[PaymentRecordResponse])
def payment_history(
    tenant_id: int | None = Query(None),
    landlord_id: int | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[PaymentRecordResponse]:
    """Ledger entries for a tenant or landlord, newest first."""
    records = list_payment_records(db, tenant_id=tenant_id, landlord_id=landlord_id, limit=limit)
    logger.info(
        f"Listed {len(records)} payment records (tenant={tenant_id}, landlord={landlord_id})"
    )
    return [PaymentRecordResponse.model_validate(record) for record in records]


@router.get("/payment-requests/{payment_request_id}", response_model=PaymentRequestResponse)
def get_payment_request(
    payment_request_id: int, db: Session = Depends(get_db)
) -> PaymentRequestResponse:
    """A bill with its computed total."""
    bill = BillResolver(db).resolve(payment_request_id)
    fields = {
        name: getattr(bill, name)
        for name in PaymentRequestResponse.model_fields
        if name != "request_total"
    }
    return PaymentRequestResponse(request_total=request_total(bill), **fields)
