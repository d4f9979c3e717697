import os
import tempfile

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# -------------------------------------------------------
# 🔧 Environment must be in place before the app is imported
# -------------------------------------------------------
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="report-portal-uploads-")
os.environ["SECRET_KEY"] = "test-secret-key"

from report_portal.main import app, get_db
from report_portal.models.models import Base
from report_portal.models.user import AdminUser
from report_portal.auth_utils import hash_password

UPLOAD_DIR = os.environ["UPLOAD_DIR"]
ADMIN_USERNAME = "officer1"
ADMIN_PASSWORD = "correct horse"


# -------------------------------------------------------
# ⚙️ Test Database Setup
# -------------------------------------------------------
# Use in-memory SQLite for fast, isolated tests
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# -------------------------------------------------------
# 🧪 Fixtures
# -------------------------------------------------------
@pytest.fixture(scope="function")
def db_session():
    """Create a new database session for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        # Drop tables to ensure clean slate for next test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Create a new test client for each test with DB override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            db_session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin(db_session):
    user = AdminUser(username=ADMIN_USERNAME, password_hash=hash_password(ADMIN_PASSWORD), role="officer")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_headers(client, admin):
    response = client.post(
        "/api/admin/login",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def upload_dir():
    """The directory the app serves under /uploads."""
    return UPLOAD_DIR
