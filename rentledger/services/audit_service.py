"""Audit service for logging money-moving events."""

from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from rentledger.models.audit_log import AuditLog


class AuditService:
    """Service for audit log operations.

    Provides static method to create minimal audit log entries. Entries are
    added to the caller's session and commit together with the change they
    describe.
    """

    @staticmethod
    def log(
        db: Session,
        entity_type: str,
        entity_id: int,
        action: str,
        changes: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Create audit log entry (one-liner).

        Args:
            db: Database session
            entity_type: Type of entity ("payment_request", "tenant_balance", etc.)
            entity_id: Primary key of the entity
            action: Action performed ("settle", "adjust", etc.)
            changes: Optional snapshot of changed fields; Decimals are stored as strings

        Returns:
            Created AuditLog object
        """
        audit = AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            changes=_jsonable(changes) if changes is not None else None,
        )
        db.add(audit)
        return audit


def _jsonable(changes: dict[str, Any]) -> dict[str, Any]:
    return {
        key: str(value) if isinstance(value, Decimal) else value for key, value in changes.items()
    }


__all__ = ["AuditService"]
