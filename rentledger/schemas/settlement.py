"""Pydantic schemas for settlement and ledger endpoints.

Amounts are Decimals and serialize as strings ("500.00") so no precision is
lost in JSON.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from rentledger.models.payment_record import RecordStatus
from rentledger.models.payment_request import BillStatus, PaymentMethod


class SettlePayload(BaseModel):
    """Request payload for POST /api/payments/settle.

    Fields are optional at the schema level so missing ids answer 400 with a
    readable message instead of a schema error.
    """

    payment_request_id: int | None = Field(
        None, alias="paymentRequestId", description="Bill to settle"
    )
    gateway: str | None = Field(
        None, description="stripe, paymongo, paypal or credit_balance"
    )
    reference: str | None = Field(
        None,
        description="Payment intent, link/session, order id, or tenant id for credit",
    )

    model_config = ConfigDict(populate_by_name=True)


class SettlementResponse(BaseModel):
    """Response for a settlement."""

    success: bool
    excess_amount: Decimal = Field(serialization_alias="excessAmount")
    payment_record_id: int | None = Field(None, serialization_alias="paymentRecordId")
    balance: Decimal
    advance_bill_ids: list[int] = Field(default_factory=list, serialization_alias="advanceBillIds")
    already_processed: bool = Field(False, serialization_alias="alreadyProcessed")

    model_config = ConfigDict(from_attributes=True)


class BalanceResponse(BaseModel):
    """Stored credit of a tenant for one occupancy."""

    tenant_id: int
    occupancy_id: int | None
    amount: Decimal


class PaymentRecordResponse(BaseModel):
    """Ledger entry."""

    id: int
    payment_request_id: int
    tenant_id: int
    landlord_id: int
    property_id: int
    amount: Decimal
    credit_applied: Decimal
    currency: str
    method: PaymentMethod
    status: RecordStatus
    external_transaction_id: str | None = None
    bills_description: str | None = None
    paid_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentRequestResponse(BaseModel):
    """Bill with its computed total."""

    id: int
    tenant_id: int
    landlord_id: int
    property_id: int
    occupancy_id: int | None = None
    due_date: date
    rent_amount: Decimal | None = None
    advance_amount: Decimal | None = None
    security_deposit_amount: Decimal | None = None
    water_bill: Decimal | None = None
    electrical_bill: Decimal | None = None
    wifi_bill: Decimal | None = None
    other_bills: Decimal | None = None
    description: str | None = None
    status: BillStatus
    payment_method: PaymentMethod | None = None
    tenant_reference_number: str | None = None
    payment_id: int | None = None
    is_move_in_payment: bool
    is_advance_payment: bool
    is_renewal_payment: bool
    request_total: Decimal = Field(serialization_alias="requestTotal")

    model_config = ConfigDict(from_attributes=True)
