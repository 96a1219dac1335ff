from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from patient_registry.models.base import Base


class Patient(Base):
    """Patient record.

    ``medical_history`` is kept as a JSON document so the list keeps its
    order and has no length bound.
    """

    __tablename__ = "patients"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    first_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contacts: Mapped[str | None] = mapped_column(String(10), nullable=True)
    age: Mapped[float | None] = mapped_column(Float, nullable=True)
    date_of_entry: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    medical_history: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    doctor_name: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
