"""
Resource lock rows used to serialize scheduling writes.

Each bookable resource (a clinician or an exam room) gets one row here the
first time it is booked. Scheduling operations lock the row with
``SELECT ... FOR UPDATE`` before reading existing appointments, so two
transactions can never both pass the conflict check for the same resource.
"""

from sqlalchemy import String, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base


class ResourceLock(Base):
    """Lock row for one bookable resource."""

    __tablename__ = "resource_locks"

    id: Mapped[int] = mapped_column(primary_key=True)

    resource_kind: Mapped[str] = mapped_column(String(20))
    """Valid values: 'clinician', 'room'."""

    resource_id: Mapped[int] = mapped_column(Integer)

    __table_args__ = (
        UniqueConstraint('resource_kind', 'resource_id', name='uq_resource_lock'),
    )
