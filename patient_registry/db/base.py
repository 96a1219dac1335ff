"""Import SQLAlchemy models so their tables are registered on the metadata."""

from patient_registry.models import Base, Patient  # noqa: F401

__all__ = ["Base", "Patient"]
