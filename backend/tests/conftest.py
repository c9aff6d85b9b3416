"""
Shared fixtures: one in-memory SQLite database for the whole run, reset
before every test, wired into the app through dependency overrides.
"""
import os

# Must be set before msarchive.db is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")
os.environ.pop("AUTH_JWT_AUDIENCE", None)

from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, update
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from msarchive.auth import create_access_token
from msarchive.config_loader import AppSettings, get_settings
from msarchive.db import Base, get_db
from msarchive.main import app
from msarchive.models import AdminAllowlistEntry, Incident, Legislation

ADMIN_EMAIL = "editor@example.org"

TEST_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def reset_database():
    """Fresh schema and default policies for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_settings] = lambda: AppSettings()
    yield
    app.dependency_overrides.pop(get_settings, None)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def use_settings():
    """Switch policies for one test: use_settings(suspect_write_mode="best_effort")."""
    def _apply(**overrides):
        settings = AppSettings(**overrides)
        app.dependency_overrides[get_settings] = lambda: settings
        return settings
    return _apply


@pytest.fixture
def admin_email(db):
    db.add(AdminAllowlistEntry(email=ADMIN_EMAIL, added_by="config"))
    db.commit()
    return ADMIN_EMAIL


@pytest.fixture
def admin_headers(admin_email):
    return {"Authorization": f"Bearer {create_access_token(admin_email)}"}


def incident_payload(**overrides):
    payload = {
        "date": "2023-05-06",
        "city": "Allen",
        "state": "TX",
        "location_type": "public_space",
        "fatalities": 8,
        "injuries": 7,
        "context": "Shopping center",
        "description": "Gunman opened fire outside an outlet mall.",
        "is_published": False,
    }
    payload.update(overrides)
    return payload


def legislation_payload(**overrides):
    payload = {
        "date": "2022-06-25",
        "jurisdiction": "FEDERAL",
        "title": "Bipartisan Safer Communities Act",
        "summary": "Expands background checks for buyers under 21.",
        "category": "background_checks",
        "is_published": False,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_incident(db):
    """Insert an incident directly through the store and return its id."""
    def _make(published=True, verified=True, **fields):
        values = dict(
            date=date(2023, 5, 6),
            city="Allen",
            state="TX",
            location_type="public_space",
            fatalities=8,
            injuries=7,
            context="Shopping center",
            description="Gunman opened fire outside an outlet mall.",
        )
        values.update(fields)
        if isinstance(values["date"], str):
            values["date"] = date.fromisoformat(values["date"])
        incident = Incident(is_published=published, **values)
        db.add(incident)
        db.commit()
        if published and not verified:
            # The flush hook stamps published rows, so clear the stamp with a bulk UPDATE
            db.execute(update(Incident).where(Incident.id == incident.id).values(last_verified_at=None))
            db.commit()
        return incident.id
    return _make


@pytest.fixture
def make_legislation(db):
    def _make(published=True, **fields):
        values = dict(
            date=date(2022, 6, 25),
            jurisdiction="FEDERAL",
            title="Bipartisan Safer Communities Act",
            category="background_checks",
            summary="Expands background checks for buyers under 21.",
            is_published=published,
            last_verified_at=datetime.now(timezone.utc) if published else None,
        )
        values.update(fields)
        law = Legislation(**values)
        db.add(law)
        db.commit()
        return law.id
    return _make
