"""Pytest configuration and shared fixtures for settlement tests."""

import os

# Set test database URL BEFORE any imports from rentledger
# This ensures the module-level engine never touches a real database
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "")

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from rentledger.models import Base, Occupancy, PaymentRequest, User  # noqa: E402
from rentledger.models.payment_request import PaymentMethod  # noqa: E402
from rentledger.services.gateways.base import Gateway, VerificationResult  # noqa: E402
from rentledger.services.money import to_money  # noqa: E402


class StaticGateway(Gateway):
    """Gateway double answering every verification with a fixed result."""

    def __init__(self, method, amount="0", transaction_id="txn_test_1", error=None):
        self.method = method
        self.amount = amount
        self.transaction_id = transaction_id
        self.error = error
        self.calls = []

    def verify(self, reference, bill):
        self.calls.append(reference)
        if self.error is not None:
            raise self.error
        return VerificationResult(
            amount_paid=to_money(self.amount),
            external_transaction_id=self.transaction_id,
            gateway_status="succeeded",
        )


@pytest.fixture
def test_engine():
    """In-memory SQLite engine shared across sessions of one test."""
    engine = create_engine(
        "sqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory bound to the test engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def db_session(session_factory):
    """Create test database session."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def parties(db_session):
    """A tenant, a landlord and their occupancy."""
    tenant = User(name="Tina Tenant", telegram_id="1001", is_tenant=True)
    landlord = User(name="Larry Landlord", telegram_id="2002", is_landlord=True)
    db_session.add_all([tenant, landlord])
    db_session.flush()

    occupancy = Occupancy(
        tenant_id=tenant.id,
        landlord_id=landlord.id,
        property_id=77,
        renewal_status="pending",
        renewal_requested=True,
    )
    db_session.add(occupancy)
    db_session.commit()
    return {"tenant": tenant, "landlord": landlord, "occupancy": occupancy}


@pytest.fixture
def make_bill(db_session, parties):
    """Factory creating committed bills for the test tenancy."""

    def _make_bill(with_occupancy=True, due_date=date(2026, 1, 15), **fields):
        bill = PaymentRequest(
            tenant_id=parties["tenant"].id,
            landlord_id=parties["landlord"].id,
            property_id=77,
            occupancy_id=parties["occupancy"].id if with_occupancy else None,
            due_date=due_date,
            **fields,
        )
        db_session.add(bill)
        db_session.commit()
        return bill

    return _make_bill


@pytest.fixture
def make_gateway():
    """Factory for gateway doubles."""

    def _make_gateway(method=PaymentMethod.STRIPE, amount="0", **kwargs):
        return StaticGateway(method, amount=amount, **kwargs)

    return _make_gateway


@pytest.fixture
def seed_balance(db_session, parties):
    """Store an initial credit for the test tenancy."""
    from rentledger.services.balance_ledger import BalanceLedger

    def _seed(amount):
        BalanceLedger(db_session).apply_delta(
            parties["tenant"].id, parties["occupancy"].id, Decimal(amount)
        )
        db_session.commit()

    return _seed
