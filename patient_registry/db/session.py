from collections.abc import Generator

from fastapi import Request
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from patient_registry.core.config import Settings


def build_engine(settings: Settings) -> Engine:
    """Create the engine with a bounded connection pool.

    Requests beyond ``db_pool_size`` wait for a free connection.
    SQLite gets the driver's default pool and cross-thread access instead.
    """

    if settings.database_url.startswith("sqlite"):
        return create_engine(
            settings.database_url,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=0,
        pool_pre_ping=True,
    )


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )


def get_db(request: Request) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""

    db = request.app.state.context.session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
