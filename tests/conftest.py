"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from finledger.api.main import create_app
from finledger.domain.models import RuleSpec
from finledger.infrastructure.database.models import Base
from finledger.infrastructure.database.repositories import LedgerRepository
from finledger.infrastructure.database.session import configure_sqlite, get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = configure_sqlite(create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False}))
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

OWNER_ID = "user_test"


@pytest.fixture
def session_factory() -> Generator[sessionmaker, None, None]:
    """Fresh schema per test; hands out independent sessions"""
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Create test database and session"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def owner_id(db: Session) -> str:
    """Owner with an opened ledger (cash account at 0)"""
    LedgerRepository(db).open(OWNER_ID)
    db.commit()
    return OWNER_ID


@pytest.fixture
def make_spec() -> Callable[..., RuleSpec]:
    """Build a monthly rent rule, overriding any field"""

    def _make_spec(**overrides) -> RuleSpec:
        fields = dict(
            start_date=date(2025, 1, 1),
            payee="Landlord",
            amount_cents=150000,
            category="bill",
            cadence="Monthly",
            interval=1,
        )
        fields.update(overrides)
        return RuleSpec(**fields)

    return _make_spec
