"""Pytest fixtures for the listing matcher.

Provides:
- In-memory SQLite database session (all tables created per test)
- In-memory fakes for the domain ports
- Catalog items used across matcher tests

Usage:
    def test_repository(db_session):
        repo = WeightRepository(db_session)
        assert repo.get_active() is None
"""

import sys
import os
from pathlib import Path
from typing import Generator

# Set environment variables BEFORE any imports to ensure they take effect
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_JSON", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

# Import models to register with Base
from models import Base  # noqa: E402

from fixtures.fakes import (  # noqa: E402
    FakeCatalog,
    FakeConfusionStore,
    FakeJunkReportStore,
    FakeRecordStore,
    FakeWeightStore,
    FakeClock,
    charizard_obsidian_flames,
)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh in-memory database session for each test.

    Creates all tables before the test and discards the database after.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def catalog() -> FakeCatalog:
    """Catalog holding the Obsidian Flames Charizard ex"""
    return FakeCatalog([charizard_obsidian_flames()])


@pytest.fixture
def confusion_store() -> FakeConfusionStore:
    return FakeConfusionStore()


@pytest.fixture
def weight_store() -> FakeWeightStore:
    return FakeWeightStore()


@pytest.fixture
def junk_store() -> FakeJunkReportStore:
    return FakeJunkReportStore()


@pytest.fixture
def record_store() -> FakeRecordStore:
    return FakeRecordStore()
