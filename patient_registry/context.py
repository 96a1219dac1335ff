from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from patient_registry.core.config import Settings
from patient_registry.db.session import build_engine, build_session_factory
from patient_registry.services.export import PatientExporter


@dataclass
class AppContext:
    """Everything a request handler needs, built once per application."""

    settings: Settings
    engine: Engine
    session_factory: sessionmaker[Session]
    exporter: PatientExporter

    @classmethod
    def from_settings(cls, settings: Settings) -> AppContext:
        engine = build_engine(settings)
        return cls(
            settings=settings,
            engine=engine,
            session_factory=build_session_factory(engine),
            exporter=PatientExporter(settings.public_dir),
        )
