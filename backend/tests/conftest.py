"""Pytest configuration and shared fixtures."""

import os

# Must be set before anything imports passcut.core.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ["AUTO_PASSCUT_CRON_SECRET"] = "test-cron-secret"
os.environ.pop("AUTO_PASSCUT_ADMIN_USER_ID", None)

from collections.abc import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

import passcut.models  # noqa: E402,F401
from passcut.db.base import Base  # noqa: E402
from passcut.db.engine import engine  # noqa: E402
from passcut.db.session import SessionLocal, get_db  # noqa: E402
from passcut.models.exam import Track  # noqa: E402
from passcut.release.throttle import traffic_throttle  # noqa: E402
from tests.helpers.seed import (  # noqa: E402
    create_answer_key,
    create_exam,
    create_region,
    create_subjects,
)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh in-memory schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        traffic_throttle.reset()


@pytest.fixture
def exam(db: Session):
    return create_exam(db)


@pytest.fixture
def region(db: Session):
    return create_region(db, name="서울", recruit_count=10, applicant_count=200)


@pytest.fixture
def public_subjects(db: Session):
    return create_subjects(db, Track.PUBLIC)


@pytest.fixture
def career_subjects(db: Session):
    return create_subjects(db, Track.CAREER)


@pytest.fixture
def public_key(db: Session, exam, public_subjects):
    """Confirmed PUBLIC answer key for the exam."""
    return create_answer_key(db, exam, public_subjects)


@pytest.fixture
def client(db: Session, monkeypatch) -> Generator[TestClient, None, None]:
    """Test client bound to the test session."""
    from passcut.main import create_app

    # pytest captures output; keep the root logger as pytest set it up
    monkeypatch.setattr("passcut.main.setup_logging", lambda: None)

    app = create_app()

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
