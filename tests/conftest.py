"""Test configuration and fixtures for the course platform.

This module provides isolated test environments:
- Temporary database (SQLite) and uploads directory
- In-memory Redis (fakeredis) for cache, carts, rate limits and webhooks
- Users, admins and logged-in clients with a CSRF header preset
"""
import io
import os
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Generator

import fakeredis
import pytest
from fastapi.testclient import TestClient

# Ensure app is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment BEFORE importing app modules
os.environ["PLATFORM_ENV"] = "test"
os.environ["SITE_URL"] = "https://example.com"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["RESEND_API_KEY"] = ""
os.environ["CLOUDFLARE_ACCOUNT_ID"] = ""
os.environ["CLOUDFLARE_API_TOKEN"] = ""

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture(scope="function")
def isolated_environment(tmp_path: Path, monkeypatch) -> Dict:
    """Point the database and uploads at a per-test temp directory.

    Returns:
        Dict with paths: db_path, uploads_dir
    """
    import app.config as config
    import app.database as db_module
    import app.infrastructure.storage.factory as storage_factory
    from app.infrastructure.storage import reset_storage

    env = {
        "db_path": tmp_path / "test.db",
        "uploads_dir": tmp_path / "uploads",
    }
    env["uploads_dir"].mkdir(parents=True, exist_ok=True)

    monkeypatch.delenv("STORAGE_BASE_PATH", raising=False)
    monkeypatch.setattr(config, "UPLOADS_DIR", env["uploads_dir"])
    monkeypatch.setattr(storage_factory, "UPLOADS_DIR", env["uploads_dir"])
    monkeypatch.setattr(db_module, "DATABASE_PATH", env["db_path"])

    reset_storage()
    yield env
    reset_storage()


@pytest.fixture(scope="function")
def fake_redis() -> Generator[fakeredis.FakeRedis, None, None]:
    """Install an in-memory Redis as the shared client."""
    from app.infrastructure.services.redis_client import RedisClient, set_redis

    server = fakeredis.FakeRedis(decode_responses=True)
    set_redis(RedisClient(client=server))
    yield server
    set_redis(None)


@pytest.fixture(scope="function")
def fresh_database(isolated_environment: Dict, fake_redis) -> Generator[Path, None, None]:
    """Initialize fresh database with schema for each test."""
    from app.database import close_db, init_db

    close_db()
    init_db()
    yield isolated_environment["db_path"]
    close_db()


@pytest.fixture(scope="function")
def db(fresh_database: Path):
    """Open connection to the test database."""
    from app.database import create_connection

    conn = create_connection()
    yield conn
    conn.close()


@pytest.fixture(scope="function")
def client(fresh_database: Path) -> Generator[TestClient, None, None]:
    """Create test client with fresh isolated environment.

    Usage:
        def test_something(client):
            response = client.get("/api/health")
            assert response.status_code == 200
    """
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client


def create_user(email: str, password: str, name: str, role: str = "user") -> int:
    from app.database import create_connection
    from app.infrastructure.repositories import UserRepository

    conn = create_connection()
    try:
        return UserRepository(conn).create(email, password, name, role)
    finally:
        conn.close()


def login(client: TestClient, email: str, password: str) -> TestClient:
    """Log ``client`` in and preset the CSRF header for later writes."""
    client.cookies.clear()
    client.headers.pop("X-CSRF-Token", None)

    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, f"Login failed: {response.text}"
    assert "platform_session" in response.cookies, "Session cookie should be set"

    token = client.get("/api/auth/csrf-token").json()["csrfToken"]
    client.headers["X-CSRF-Token"] = token
    return client


@contextmanager
def login_as(client: TestClient, email: str, password: str):
    """Context manager to temporarily act as another user.

    Usage:
        with login_as(client, admin["email"], admin["password"]):
            client.post("/api/admin/reviews/1/approve")
    """
    login(client, email, password)
    try:
        yield client
    finally:
        client.post("/api/auth/logout")
        client.cookies.clear()
        client.headers.pop("X-CSRF-Token", None)


@pytest.fixture(scope="function")
def test_user(client: TestClient) -> Dict:
    """Create a regular user and return credentials.

    Returns:
        Dict with: id, email, password, name
    """
    credentials = {
        "email": "student@example.com",
        "password": "StudentPass123",
        "name": "Test Student",
    }
    credentials["id"] = create_user(credentials["email"], credentials["password"], credentials["name"])
    return credentials


@pytest.fixture(scope="function")
def admin_user(client: TestClient) -> Dict:
    credentials = {
        "email": "admin@example.com",
        "password": "AdminPass123",
        "name": "Site Admin",
    }
    credentials["id"] = create_user(
        credentials["email"], credentials["password"], credentials["name"], role="admin"
    )
    return credentials


@pytest.fixture(scope="function")
def authenticated_client(client: TestClient, test_user: Dict) -> TestClient:
    """Client logged in as test_user with the CSRF header set."""
    return login(client, test_user["email"], test_user["password"])


@pytest.fixture(scope="function")
def admin_client(client: TestClient, admin_user: Dict) -> TestClient:
    """Client logged in as admin_user with the CSRF header set."""
    return login(client, admin_user["email"], admin_user["password"])


@pytest.fixture(scope="function")
def catalog(fresh_database: Path) -> Dict:
    """Published course, event and product plus an unpublished course.

    Returns:
        Dict of IDs: course, event, product, draft_course
    """
    from app.database import create_connection
    from app.infrastructure.repositories import CatalogRepository

    conn = create_connection()
    try:
        repo = CatalogRepository(conn)
        ids = {
            "course": repo.create_course(
                "Mindful Meditation Basics", "mindful-meditation-basics", 49.99,
                description="Learn the foundations of mindful meditation",
                level="beginner", instructor_name="Ana Rivera"
            ),
            "event": repo.create_event(
                "Full Moon Retreat", "full-moon-retreat", 120.0,
                event_date="2030-06-01T18:00:00", venue_city="Lisbon",
                description="A weekend meditation retreat"
            ),
            "product": repo.create_product(
                "Breathwork Guide", "breathwork-guide", 15.0, "ebook",
                description="A printable breathwork guide"
            ),
            "draft_course": repo.create_course(
                "Advanced Meditation Draft", "advanced-meditation-draft", 99.0,
                is_published=False
            ),
        }
    finally:
        conn.close()
    return ids


def enroll(user_id: int, course_id: int) -> None:
    """Grant course access without going through checkout."""
    from app.database import create_connection

    conn = create_connection()
    try:
        conn.execute(
            "INSERT OR IGNORE INTO course_enrollments (user_id, course_id) VALUES (?, ?)",
            (user_id, course_id)
        )
        conn.commit()
    finally:
        conn.close()


@pytest.fixture(scope="function")
def test_image_bytes() -> bytes:
    """Create minimal valid JPEG image in memory."""
    from PIL import Image

    img = Image.new("RGB", (120, 80), color="red")
    img_bytes = io.BytesIO()
    img.save(img_bytes, format="JPEG", quality=85)
    return img_bytes.getvalue()


@pytest.fixture(scope="function")
def test_png_bytes() -> bytes:
    from PIL import Image

    img = Image.new("RGB", (64, 32), color="blue")
    img_bytes = io.BytesIO()
    img.save(img_bytes, format="PNG")
    return img_bytes.getvalue()
