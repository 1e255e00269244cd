"""Pytest configuration and fixtures"""
import os
from typing import Callable, Dict, Generator

# Settings are read at import time; plain http in tests cannot carry Secure cookies
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("JWT_ACCESS_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")
os.environ["REFRESH_COOKIE_SECURE"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

import galleria.models  # noqa: F401
from galleria.config import settings
from galleria.database import Base, get_db
from galleria.main import app
from galleria.middleware.rate_limit import limiter
from galleria.utils.jwt_utils import SigningKeys
from galleria.utils.sessions import SessionManager

TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Rate-limit counters are process-global; start every test from zero"""
    limiter.reset()
    yield


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session, tmp_path, monkeypatch) -> Generator[TestClient, None, None]:
    """Create test client with database session override and a private upload dir"""
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def keys() -> SigningKeys:
    return SigningKeys(access_secret="unit-access-secret", refresh_secret="unit-refresh-secret")


@pytest.fixture
def sessions(keys: SigningKeys) -> SessionManager:
    """Standalone session manager with an in-memory revocation store"""
    return SessionManager.create(keys)


@pytest.fixture
def signup(client: TestClient) -> Callable[..., Dict[str, str]]:
    """Sign a user up and return their bearer headers"""

    def _signup(username: str, password: str = "password123") -> Dict[str, str]:
        response = client.post("/api/auth/signup", json={"username": username, "password": password})
        assert response.status_code == 201, response.text
        return {"Authorization": f"Bearer {response.json()['accessToken']}"}

    return _signup


@pytest.fixture
def upload_png(client: TestClient) -> Callable[..., dict]:
    """Upload a small PNG into a gallery and return the created image"""

    def _upload(gallery_id: int, title: str, headers: Dict[str, str]) -> dict:
        response = client.post(
            f"/api/galleries/{gallery_id}/images",
            data={"title": title},
            files={"file": ("picture.png", PNG_BYTES, "image/png")},
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _upload
