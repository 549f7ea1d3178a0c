"""
Patient model.

Only the fields the scheduling engine needs are modelled here: identity,
organization scope and the name shown in conflict reports and availability
listings.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, TIMESTAMP, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Patient(Base):
    """Patient who books appointments."""

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    organization_id: Mapped[Optional[int]] = mapped_column(nullable=True)
    """Organization (tenant) the patient belongs to."""

    first_name: Mapped[str] = mapped_column(String(255))
    last_name: Mapped[str] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    appointments = relationship("Appointment", back_populates="patient")

    __table_args__ = (
        Index('idx_patients_organization', 'organization_id'),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
