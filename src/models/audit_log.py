"""
Audit log model.

One row per successful mutation of an appointment or exam room, holding the
action and, for updates, a before/after attribute snapshot.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, String, TIMESTAMP, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base


class AuditLog(Base):
    """Audit trail entry."""

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    action: Mapped[str] = mapped_column(String(20))
    """Valid values: 'create', 'read', 'update', 'delete'."""

    resource_type: Mapped[str] = mapped_column(String(100))
    """Kind of record audited (e.g., 'Appointment', 'ExamRoom')."""

    resource_id: Mapped[int] = mapped_column()

    changes: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=True
    )
    """``{"before": {...}, "after": {...}}`` for updates; null otherwise."""

    extra: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata", JSON().with_variant(JSONB(), "postgresql"), nullable=True
    )
    """Free-form context stored in the ``metadata`` column."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_audit_logs_resource', 'resource_type', 'resource_id'),
    )
