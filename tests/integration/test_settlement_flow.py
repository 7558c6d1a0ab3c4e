"""Integration tests for settling bills end to end against a real session."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from rentledger.models import AuditLog, Occupancy, PaymentRecord, PaymentRequest
from rentledger.models.payment_record import RecordStatus
from rentledger.models.payment_request import BillStatus, PaymentMethod
from rentledger.services.balance_ledger import BalanceLedger
from rentledger.services.errors import (
    AlreadySettledError,
    GatewayTimeoutError,
    GatewayVerificationFailed,
    InsufficientCreditError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from rentledger.services.settlement_service import SettlementService


def count(db_session, model, *where):
    return db_session.execute(select(func.count()).select_from(model).where(*where)).scalar_one()


def balance_of(db_session, parties):
    return BalanceLedger(db_session).get_balance(parties["tenant"].id, parties["occupancy"].id)


def service_with(db_session, gateway):
    return SettlementService(db_session, {gateway.method: gateway})


class TestSettlementHappyPath:
    """A verified overpayment settles the bill and credits the excess."""

    def test_overpayment_credited(self, db_session, parties, make_bill, make_gateway):
        bill = make_bill(
            rent_amount=Decimal("5000"),
            water_bill=Decimal("200"),
            electrical_bill=Decimal("300"),
            description="January rent",
        )
        gateway = make_gateway(PaymentMethod.STRIPE, amount="6000", transaction_id="pi_abc")

        result = service_with(db_session, gateway).settle(bill.id, "stripe", "pi_abc")

        assert result.success is True
        assert result.already_processed is False
        assert result.excess_amount == Decimal("500.00")
        assert result.balance == Decimal("500.00")
        assert result.advance_bill_ids == []
        assert balance_of(db_session, parties) == Decimal("500.00")

        db_session.refresh(bill)
        assert bill.status == BillStatus.PAID
        assert bill.payment_method == PaymentMethod.STRIPE
        assert bill.tenant_reference_number == "pi_abc"
        assert bill.description == "January rent (Via Stripe)"
        assert bill.paid_at is not None

        record = db_session.execute(select(PaymentRecord)).scalar_one()
        assert bill.payment_id == record.id == result.payment_record_id
        assert record.amount == Decimal("6000.00")
        assert record.credit_applied == Decimal("0.00")
        assert record.gateway_reference == "pi_abc"
        assert record.external_transaction_id == "pi_abc"
        assert record.method == PaymentMethod.STRIPE
        assert record.status == RecordStatus.RECORDED
        assert record.currency == "PHP"
        assert record.water_bill == Decimal("200")
        assert record.bills_description == "January rent"

    def test_exact_payment_leaves_balance(self, db_session, parties, make_bill, make_gateway):
        bill = make_bill(rent_amount=Decimal("5000"))
        gateway = make_gateway(PaymentMethod.PAYMONGO, amount="5000")

        result = service_with(db_session, gateway).settle(bill.id, "paymongo", "link_1")

        assert result.excess_amount == Decimal("0.00")
        assert balance_of(db_session, parties) == Decimal("0.00")
        db_session.refresh(bill)
        assert bill.description == "Payment (Via PayMongo)"

    def test_reference_is_trimmed(self, db_session, make_bill, make_gateway):
        bill = make_bill(rent_amount=Decimal("5000"))
        gateway = make_gateway(PaymentMethod.PAYPAL, amount="5000")

        service_with(db_session, gateway).settle(bill.id, PaymentMethod.PAYPAL, "  ORDER9  ")

        assert gateway.calls == ["ORDER9"]

    def test_settlement_is_audited(self, db_session, make_bill, make_gateway):
        bill = make_bill(rent_amount=Decimal("5000"))
        gateway = make_gateway(amount="5500")

        service_with(db_session, gateway).settle(bill.id, "stripe", "pi_1")

        entry = db_session.execute(
            select(AuditLog).where(AuditLog.action == "settle")
        ).scalar_one()
        assert entry.entity_id == bill.id
        assert entry.changes["balance_change"] == "500.00"


class TestShortfall:
    """Underpayments are drawn from stored credit."""

    def test_shortfall_absorbed_by_credit(
        self, db_session, parties, make_bill, make_gateway, seed_balance
    ):
        seed_balance("1000")
        bill = make_bill(rent_amount=Decimal("5000"))
        gateway = make_gateway(amount="4700")

        result = service_with(db_session, gateway).settle(bill.id, "stripe", "pi_short")

        assert result.excess_amount == Decimal("0.00")
        assert result.balance == Decimal("700.00")
        record = db_session.get(PaymentRecord, result.payment_record_id)
        assert record.amount == Decimal("4700.00")
        assert record.credit_applied == Decimal("300.00")

    def test_shortfall_beyond_credit_caps_at_zero(
        self, db_session, parties, make_bill, make_gateway, seed_balance
    ):
        seed_balance("200")
        bill = make_bill(rent_amount=Decimal("5000"))
        gateway = make_gateway(amount="4000")

        result = service_with(db_session, gateway).settle(bill.id, "stripe", "pi_short")

        assert result.balance == Decimal("0.00")
        assert balance_of(db_session, parties) == Decimal("0.00")
        db_session.refresh(bill)
        assert bill.status == BillStatus.PAID
        assert db_session.get(PaymentRecord, result.payment_record_id).credit_applied == Decimal(
            "200.00"
        )

    def test_bill_without_occupancy_never_touches_balance(
        self, db_session, make_bill, make_gateway
    ):
        bill = make_bill(with_occupancy=False, rent_amount=Decimal("5000"))
        gateway = make_gateway(amount="6000")

        result = service_with(db_session, gateway).settle(bill.id, "stripe", "pi_x")

        assert result.excess_amount == Decimal("1000.00")
        assert result.balance == Decimal("0.00")
        assert count(db_session, AuditLog, AuditLog.entity_type == "tenant_balance") == 0


class TestIdempotency:
    """A bill settles at most once."""

    def test_replay_is_a_no_op(self, db_session, parties, make_bill, make_gateway):
        bill = make_bill(rent_amount=Decimal("5000"))
        gateway = make_gateway(amount="6000")
        service = service_with(db_session, gateway)

        first = service.settle(bill.id, "stripe", "pi_abc")
        second = service.settle(bill.id, "stripe", "pi_abc")

        assert second.success is True
        assert second.already_processed is True
        assert second.payment_record_id == first.payment_record_id
        assert second.balance == Decimal("1000.00")
        assert gateway.calls == ["pi_abc"]
        assert count(db_session, PaymentRecord) == 1
        assert balance_of(db_session, parties) == Decimal("1000.00")

    def test_replay_with_other_reference_same_gateway(self, db_session, make_bill, make_gateway):
        bill = make_bill(rent_amount=Decimal("5000"))
        gateway = make_gateway(amount="5000")
        service = service_with(db_session, gateway)

        service.settle(bill.id, "stripe", "pi_1")
        replay = service.settle(bill.id, "stripe", "pi_2")

        assert replay.already_processed is True
        assert count(db_session, PaymentRecord) == 1

    def test_paid_via_other_gateway_conflicts(self, db_session, make_bill, make_gateway):
        bill = make_bill(rent_amount=Decimal("5000"))
        stripe_gateway = make_gateway(PaymentMethod.STRIPE, amount="5000")
        paypal_gateway = make_gateway(PaymentMethod.PAYPAL, amount="5000")
        service = SettlementService(
            db_session,
            {PaymentMethod.STRIPE: stripe_gateway, PaymentMethod.PAYPAL: paypal_gateway},
        )

        service.settle(bill.id, "stripe", "pi_1")
        with pytest.raises(AlreadySettledError) as exc_info:
            service.settle(bill.id, "paypal", "ORDER1")

        assert exc_info.value.http_status == 409
        assert paypal_gateway.calls == []
        assert count(db_session, PaymentRecord) == 1

    def test_paid_upstream_without_method_conflicts(self, db_session, make_bill, make_gateway):
        bill = make_bill(rent_amount=Decimal("5000"), status=BillStatus.PAID)
        gateway = make_gateway(amount="5000")

        with pytest.raises(AlreadySettledError) as exc_info:
            service_with(db_session, gateway).settle(bill.id, "stripe", "pi_1")

        assert exc_info.value.message == "Payment request already settled via another method"
        assert gateway.calls == []
        assert count(db_session, PaymentRecord) == 0

    def test_constraint_violation_on_unpaid_bill_rolls_back(
        self, db_session, parties, make_bill, make_gateway
    ):
        bill = make_bill(rent_amount=Decimal("5000"))
        db_session.add(
            PaymentRecord(
                payment_request_id=bill.id,
                gateway_reference="pi_dup",
                tenant_id=parties["tenant"].id,
                landlord_id=parties["landlord"].id,
                property_id=77,
                amount=Decimal("1"),
                credit_applied=Decimal("0"),
                currency="PHP",
                method=PaymentMethod.STRIPE,
                status=RecordStatus.RECORDED,
                paid_at=datetime.now(timezone.utc),
            )
        )
        db_session.commit()
        gateway = make_gateway(amount="6000")

        with pytest.raises(StoreError):
            service_with(db_session, gateway).settle(bill.id, "stripe", "pi_dup")

        db_session.refresh(bill)
        assert bill.status == BillStatus.PENDING
        assert balance_of(db_session, parties) == Decimal("0.00")
        assert count(db_session, PaymentRecord) == 1


class TestVerificationFailures:
    """Nothing is written unless the gateway confirms the payment."""

    @pytest.mark.parametrize(
        "error",
        [
            GatewayVerificationFailed("Stripe payment intent pi_bad not found"),
            GatewayTimeoutError("Stripe did not respond"),
        ],
    )
    def test_no_mutation(self, db_session, parties, make_bill, make_gateway, error):
        bill = make_bill(rent_amount=Decimal("5000"))
        gateway = make_gateway(amount="6000", error=error)

        with pytest.raises(type(error)):
            service_with(db_session, gateway).settle(bill.id, "stripe", "pi_bad")

        db_session.refresh(bill)
        assert bill.status == BillStatus.PENDING
        assert bill.payment_id is None
        assert count(db_session, PaymentRecord) == 0
        assert count(db_session, AuditLog) == 0
        assert balance_of(db_session, parties) == Decimal("0.00")


class TestValidation:
    """Invalid requests fail before any lookup."""

    @pytest.mark.parametrize(
        "payment_request_id,gateway,reference,missing",
        [
            (None, "stripe", "pi_1", "paymentRequestId"),
            (1, "stripe", "", "reference"),
            (1, "stripe", "   ", "reference"),
            (1, None, "pi_1", "gateway"),
        ],
    )
    def test_missing_fields(self, db_session, make_gateway, payment_request_id, gateway, reference, missing):
        stub = make_gateway()

        with pytest.raises(ValidationError) as exc_info:
            service_with(db_session, stub).settle(payment_request_id, gateway, reference)

        assert missing in exc_info.value.message
        assert stub.calls == []

    def test_unsupported_gateway(self, db_session, make_gateway):
        with pytest.raises(ValidationError, match="Unsupported gateway"):
            service_with(db_session, make_gateway()).settle(1, "bitcoin", "tx")

    def test_unconfigured_gateway(self, db_session, make_bill, make_gateway):
        bill = make_bill(rent_amount=Decimal("5000"))

        with pytest.raises(ValidationError, match="not configured"):
            service_with(db_session, make_gateway(PaymentMethod.STRIPE)).settle(
                bill.id, "paypal", "ORDER1"
            )

    def test_unknown_bill(self, db_session, make_gateway):
        stub = make_gateway()

        with pytest.raises(NotFoundError):
            service_with(db_session, stub).settle(999, "stripe", "pi_1")
        assert stub.calls == []


class TestAdvancePayments:
    """Whole prepaid months become paid bills of their own."""

    def test_two_months_materialized(self, db_session, parties, make_bill, make_gateway):
        bill = make_bill(
            due_date=date(2025, 12, 31),
            rent_amount=Decimal("5000"),
            advance_amount=Decimal("12000"),
        )
        gateway = make_gateway(PaymentMethod.PAYMONGO, amount="17000", transaction_id="EXT1")

        result = service_with(db_session, gateway).settle(bill.id, "paymongo", "link_1")

        assert len(result.advance_bill_ids) == 2
        advance = (
            db_session.execute(
                select(PaymentRequest)
                .where(PaymentRequest.id.in_(result.advance_bill_ids))
                .order_by(PaymentRequest.due_date)
            )
            .scalars()
            .all()
        )
        assert [b.due_date for b in advance] == [date(2026, 1, 31), date(2026, 2, 28)]
        for month, advance_bill in enumerate(advance, start=2):
            assert advance_bill.status == BillStatus.PAID
            assert advance_bill.is_advance_payment is True
            assert advance_bill.rent_amount == Decimal("5000")
            assert advance_bill.advance_amount == Decimal("0")
            assert advance_bill.payment_id == result.payment_record_id
            assert advance_bill.advance_source_id == bill.id
            assert advance_bill.tenant_reference_number == "EXT1"
            assert advance_bill.description == f"Advance Payment (Month {month} of 3) - via PayMongo"

    def test_move_in_advance_is_a_deposit(self, db_session, make_bill, make_gateway):
        bill = make_bill(
            rent_amount=Decimal("5000"),
            advance_amount=Decimal("10000"),
            security_deposit_amount=Decimal("5000"),
            is_move_in_payment=True,
        )
        gateway = make_gateway(amount="20000")

        result = service_with(db_session, gateway).settle(bill.id, "stripe", "pi_move")

        assert result.advance_bill_ids == []
        assert count(db_session, PaymentRequest, PaymentRequest.is_advance_payment.is_(True)) == 0

    def test_existing_month_not_duplicated(self, db_session, parties, make_bill, make_gateway):
        make_bill(
            due_date=date(2026, 2, 15),
            rent_amount=Decimal("5000"),
            status=BillStatus.PAID,
            is_advance_payment=True,
        )
        bill = make_bill(rent_amount=Decimal("5000"), advance_amount=Decimal("10000"))
        gateway = make_gateway(amount="15000")

        result = service_with(db_session, gateway).settle(bill.id, "stripe", "pi_adv")

        assert len(result.advance_bill_ids) == 1
        assert count(db_session, PaymentRequest, PaymentRequest.is_advance_payment.is_(True)) == 2

    def test_renewal_clears_occupancy_flags(self, db_session, parties, make_bill, make_gateway):
        bill = make_bill(
            rent_amount=Decimal("5000"),
            advance_amount=Decimal("5000"),
            is_renewal_payment=True,
        )
        gateway = make_gateway(amount="10000")

        service_with(db_session, gateway).settle(bill.id, "stripe", "pi_renew")

        occupancy = db_session.get(Occupancy, parties["occupancy"].id)
        db_session.refresh(occupancy)
        assert occupancy.renewal_status is None
        assert occupancy.renewal_requested is False


class TestCreditSettlement:
    """Paying a bill from stored credit."""

    def test_credit_pays_full_total(self, db_session, parties, make_bill, seed_balance):
        seed_balance("6000")
        bill = make_bill(rent_amount=Decimal("5000"), water_bill=Decimal("200"))

        result = SettlementService(db_session, {}).settle(
            bill.id, "credit_balance", str(parties["tenant"].id)
        )

        assert result.balance == Decimal("800.00")
        assert result.excess_amount == Decimal("0.00")
        record = db_session.get(PaymentRecord, result.payment_record_id)
        assert record.amount == Decimal("0.00")
        assert record.credit_applied == Decimal("5200.00")
        assert record.method == PaymentMethod.CREDIT
        db_session.refresh(bill)
        assert bill.description == "Payment (Via Credit Balance)"

    def test_insufficient_credit_writes_nothing(self, db_session, parties, make_bill, seed_balance):
        seed_balance("100")
        bill = make_bill(rent_amount=Decimal("5000"))

        with pytest.raises(InsufficientCreditError):
            SettlementService(db_session, {}).settle(
                bill.id, "credit_balance", str(parties["tenant"].id)
            )

        assert count(db_session, PaymentRecord) == 0
        assert balance_of(db_session, parties) == Decimal("100.00")


class TestNotifications:
    """Messages are prepared for both parties."""

    def test_tenant_and_landlord_messages(self, db_session, parties, make_bill, make_gateway):
        bill = make_bill(rent_amount=Decimal("5000"))
        gateway = make_gateway(amount="6000", transaction_id="pi_abc")

        result = service_with(db_session, gateway).settle(bill.id, "stripe", "pi_abc")

        tenant_note, landlord_note = result.notifications
        assert tenant_note.recipient == "tenant"
        assert tenant_note.user_id == parties["tenant"].id
        assert "PHP 6,000.00" in tenant_note.message
        assert "pi_abc" in tenant_note.message
        assert landlord_note.recipient == "landlord"
        assert landlord_note.user_id == parties["landlord"].id
        assert "via Stripe" in landlord_note.message

    def test_replay_sends_nothing(self, db_session, make_bill, make_gateway):
        bill = make_bill(rent_amount=Decimal("5000"))
        service = service_with(db_session, make_gateway(amount="5000"))

        service.settle(bill.id, "stripe", "pi_abc")

        assert service.settle(bill.id, "stripe", "pi_abc").notifications == []
