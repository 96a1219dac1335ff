from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from patient_registry.context import AppContext
from patient_registry.core.config import Settings
from patient_registry.db.base import Base
from patient_registry.main import create_app
from patient_registry.services.patients import PatientGateway


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'patients.db'}",
        public_dir=str(tmp_path / "public"),
        static_dir=str(tmp_path / "build"),
    )


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def session(settings: Settings) -> Iterator[Session]:
    context = AppContext.from_settings(settings)
    Base.metadata.create_all(bind=context.engine)
    db = context.session_factory()
    try:
        yield db
    finally:
        db.close()
        context.engine.dispose()


@pytest.fixture
def gateway(session: Session) -> PatientGateway:
    return PatientGateway(session)
