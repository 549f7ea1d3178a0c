"""
Audit logging for scheduling mutations.

Every successful create/update of an appointment or exam room is recorded as
one ``AuditLog`` row. The row is written inside the caller's transaction,
under a savepoint, so a failing audit insert does not take the domain change
down with it.
"""

import logging
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.orm import Session

from core.constants import AuditAction
from models import AuditLog

logger = logging.getLogger(__name__)


class AuditSink(Protocol):
    """Anything that can record an audit entry."""

    def record(
        self,
        action: AuditAction,
        resource_type: str,
        resource_id: int,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Any:
        ...


class AuditService:
    """Database-backed audit sink."""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        action: AuditAction,
        resource_type: str,
        resource_id: int,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        """
        Write one audit entry in the current transaction.

        Args:
            action: What happened
            resource_type: Kind of record (e.g., "Appointment")
            resource_id: ID of the record
            before: Attribute snapshot before an update
            after: Attribute snapshot after an update
            metadata: Extra context

        Returns:
            The flushed AuditLog row

        Raises:
            SQLAlchemyError: If the insert fails (the savepoint is rolled back)
        """
        changes: Optional[Dict[str, Any]] = None
        if before is not None or after is not None:
            changes = {"before": before, "after": after}

        entry = AuditLog(
            action=AuditAction(action).value,
            resource_type=resource_type,
            resource_id=resource_id,
            changes=changes,
            extra=metadata,
        )
        with self.db.begin_nested():
            self.db.add(entry)

        logger.info(f"Audit: {entry.action} {resource_type} {resource_id}")
        return entry


def emit_audit(
    sink: AuditSink,
    action: AuditAction,
    resource_type: str,
    resource_id: int,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Record an audit entry without letting a sink failure undo the mutation.

    Returns:
        True if the sink accepted the entry, False if it failed (logged)
    """
    try:
        sink.record(action, resource_type, resource_id, before=before, after=after)
        return True
    except Exception as e:
        logger.exception(
            f"Failed to record audit {AuditAction(action).value} for {resource_type} {resource_id}: {e}"
        )
        return False
