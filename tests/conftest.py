import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import comment_hash.main as main_module
from comment_hash.database import Base, get_db
from comment_hash.main import app
from comment_hash.middleware.rate_limit import limiter
from comment_hash.services.settings_store import SettingsStore
from tests.test_utils import TEST_SECRET_KEY


@pytest.fixture
def db_session():
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
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


@pytest.fixture
def settings_store(db_session):
    """Activated settings with a known secret key and the easiest difficulty."""
    store = SettingsStore(db_session)
    store.activate()
    store.update(secret_key=TEST_SECRET_KEY, difficulty=2)
    return store


@pytest.fixture
def client(db_session, settings_store):
    """Create a test client with the test database and disabled rate limiting."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    # Disable rate limiting for tests
    limiter.enabled = False

    # Startup checks and activation run against the test database
    original_engine = main_module.engine
    main_module.engine = db_session.get_bind()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    limiter.enabled = True
    main_module.engine = original_engine
