"""Shared pytest fixtures."""

import os

# keep the app's own engine off disk; tests use the engine below
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.utils.db import Base, ProductRepository, ProfileRepository, get_db

# Test database - use StaticPool for in-memory sqlite thread safety
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def test_db():
    """Create test database for each test function."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def test_client(test_db):
    """Create test client with the test database."""

    from marketplace.main import app, limiter

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    # Disable rate limiting for tests by setting enabled=False on the actual limiter
    original_enabled = limiter.enabled
    limiter.enabled = False

    with TestClient(app) as client:
        yield client

    # Restore original state
    limiter.enabled = original_enabled
    app.dependency_overrides.clear()


@pytest.fixture
def vendor(test_db):
    """A vendor profile with a local-format WhatsApp number."""
    return ProfileRepository(test_db).create(
        full_name="Studio Foto Elegant", whatsapp_number="081234567890", is_vendor=True
    )


@pytest.fixture
def buyer(test_db):
    return ProfileRepository(test_db).create(
        full_name="Rina", whatsapp_number="6281311112222"
    )


@pytest.fixture
def make_product(test_db, vendor):
    """Factory for approved products owned by the vendor fixture."""
    repo = ProductRepository(test_db)

    def _make(name="Paket Foto Premium", **overrides):
        fields = {
            "vendor_id": vendor.id,
            "name": name,
            "slug": name.lower().replace(" ", "-"),
            "description": "Dokumentasi pernikahan lengkap seharian penuh",
            "category": "photographer",
            "location": "Banjarmasin",
            "status": "approved",
        }
        fields.update(overrides)
        return repo.create(**fields)

    return _make
