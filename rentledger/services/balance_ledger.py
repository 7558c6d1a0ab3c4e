"""Tenant balance ledger.

Credit is added through `apply_delta`, one INSERT ... ON CONFLICT DO UPDATE
statement. The addition happens in the database against the row's current
value, so two settlements for the same (tenant, occupancy) cannot overwrite
each other's delta. The result is floored at zero in the same statement.

Credit is taken through `draw`, a conditional UPDATE that only matches while
the row still holds the amount being taken.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import case, literal, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from rentledger.models.tenant_balance import TenantBalance
from rentledger.services.audit_service import AuditService
from rentledger.services.errors import InsufficientCreditError, StoreError
from rentledger.services.money import ZERO, to_money

logger = logging.getLogger(__name__)

# Dialects with a conflict-resolving INSERT
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

# Compare-and-set rounds for a partial draw racing other settlements
DRAW_ATTEMPTS = 3


def compute_balance_change(excess: Decimal, current_balance: Decimal) -> Decimal:
    """Signed balance adjustment for a payment that differs from the bill total.

    Overpayment is credited in full. A shortfall is drawn from stored credit,
    as much as there is; any remainder beyond the credit is accepted and the
    bill still settles.
    """
    if excess > ZERO:
        return excess
    if excess < ZERO:
        needed = -excess
        if current_balance >= needed:
            return -needed
        if current_balance > ZERO:
            return -current_balance
    return ZERO


class BalanceLedger:
    """Read and adjust stored tenant credit."""

    def __init__(self, db: Session):
        """Initialize with database session.

        Args:
            db: Session whose transaction the adjustments join
        """
        self.db = db

    def get_balance(self, tenant_id: int, occupancy_id: int | None) -> Decimal:
        """Current balance for the key, zero when no row exists."""
        if occupancy_id is None:
            return ZERO
        amount = self.db.execute(
            select(TenantBalance.amount).where(
                TenantBalance.tenant_id == tenant_id,
                TenantBalance.occupancy_id == occupancy_id,
            )
        ).scalar_one_or_none()
        return to_money(amount)

    def apply_delta(self, tenant_id: int, occupancy_id: int, delta: Decimal) -> Decimal:
        """Atomically add `delta` to the balance and return the new amount.

        Creates the row on first use. Negative results are stored as zero.
        Does not commit: the change belongs to the caller's transaction.

        Raises:
            StoreError: If the database dialect has no atomic upsert
        """
        delta = to_money(delta)
        if delta == ZERO:
            return self.get_balance(tenant_id, occupancy_id)

        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise StoreError(f"Atomic balance upsert is not supported on {dialect}")

        table = TenantBalance.__table__
        now = datetime.now(timezone.utc)
        summed = table.c.amount + delta

        stmt = insert(table).values(
            tenant_id=tenant_id,
            occupancy_id=occupancy_id,
            amount=max(delta, ZERO),
            last_updated=now,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.tenant_id, table.c.occupancy_id],
            set_={
                "amount": case((summed < 0, literal(ZERO)), else_=summed),
                "last_updated": now,
                "updated_at": now,
            },
        ).returning(table.c.id, table.c.amount)

        row = self.db.execute(stmt).one()
        new_amount = to_money(row.amount)

        AuditService.log(
            self.db,
            entity_type="tenant_balance",
            entity_id=row.id,
            action="adjust",
            changes={"delta": delta, "amount": new_amount},
        )
        logger.info(
            f"Balance for tenant {tenant_id} occupancy {occupancy_id} adjusted by {delta} "
            f"to {new_amount}"
        )
        return new_amount

    def draw(
        self,
        tenant_id: int,
        occupancy_id: int,
        amount: Decimal,
        allow_partial: bool = False,
    ) -> tuple[Decimal, Decimal]:
        """Take up to `amount` of stored credit; return (drawn, new balance).

        The full draw is one conditional UPDATE that only matches while the
        stored amount still covers it, so a concurrent draw can never be
        spent twice. With `allow_partial`, whatever credit is left is taken
        instead, compare-and-set against the amount just read.
        Does not commit.

        Raises:
            InsufficientCreditError: If the credit does not cover `amount`
                and partial draws are not allowed
            StoreError: If the balance kept changing under a partial draw
        """
        amount = to_money(amount)
        if amount <= ZERO:
            return ZERO, self.get_balance(tenant_id, occupancy_id)

        for _ in range(DRAW_ATTEMPTS):
            new_amount = self._take(tenant_id, occupancy_id, amount, TenantBalance.amount >= amount)
            if new_amount is not None:
                return amount, new_amount

            if not allow_partial:
                logger.info(
                    f"Credit of tenant {tenant_id} occupancy {occupancy_id} does not cover {amount}"
                )
                raise InsufficientCreditError("Insufficient credit balance")

            current = self.get_balance(tenant_id, occupancy_id)
            drawn = -compute_balance_change(-amount, current)
            if drawn == ZERO:
                return ZERO, current
            new_amount = self._take(tenant_id, occupancy_id, drawn, TenantBalance.amount == current)
            if new_amount is not None:
                return drawn, new_amount

        logger.error(f"Balance of tenant {tenant_id} occupancy {occupancy_id} kept changing")
        raise StoreError("Balance changed concurrently, retry the settlement")

    def _take(self, tenant_id: int, occupancy_id: int, amount: Decimal, condition) -> Decimal | None:
        now = datetime.now(timezone.utc)
        stmt = (
            update(TenantBalance)
            .where(
                TenantBalance.tenant_id == tenant_id,
                TenantBalance.occupancy_id == occupancy_id,
                condition,
            )
            .values(amount=TenantBalance.amount - amount, last_updated=now, updated_at=now)
            .returning(TenantBalance.id, TenantBalance.amount)
            .execution_options(synchronize_session=False)
        )
        row = self.db.execute(stmt).first()
        if row is None:
            return None

        new_amount = to_money(row.amount)
        AuditService.log(
            self.db,
            entity_type="tenant_balance",
            entity_id=row.id,
            action="draw",
            changes={"delta": -amount, "amount": new_amount},
        )
        logger.info(
            f"Drew {amount} from tenant {tenant_id} occupancy {occupancy_id}, {new_amount} left"
        )
        return new_amount


__all__ = ["BalanceLedger", "compute_balance_change"]
