# tests/conftest.py

import os
import tempfile

# окружение до импорта приложения: Settings() читается при импорте
_tmp = tempfile.mkdtemp(prefix="backoffice-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp}/boot.db"
os.environ["AUTH_SECRET_KEY"] = "test-secret-key"
os.environ["LOG_DIR"] = os.path.join(_tmp, "log")
os.environ["LOG_PRINT"] = "0"
os.environ["UPLOADS_DIR"] = os.path.join(_tmp, "uploads")
os.environ["VIEWS_DIR"] = os.path.join(_tmp, "views")
os.environ["STORAGE_SCAN_ENABLED"] = "false"
os.environ["LOGIN_RATE_LIMIT"] = "1000/minute"
os.environ["INTERNAL_API_KEY"] = "internal-test-key"
os.environ["INTERNAL_API_ALLOWED_HOSTS"] = '["127.0.0.1", "testclient"]'
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "admin-pass"
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["SMTP_HOST"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func
from sqlalchemy.future import select

from backoffice.config import settings
from backoffice.main import app as backoffice_app

ADMIN = ("admin", "admin-pass")


@pytest.fixture
def app(tmp_path, monkeypatch):
    """Новая SQLite-база и каталог загрузок на каждый тест."""
    monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setattr(settings, "UPLOADS_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "VIEWS_DIR", str(tmp_path / "views"))
    return backoffice_app


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def login(client, username, password):
    client.cookies.clear()
    response = client.post("/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def create_user(client, username, role="client", email=None, password="secret-pass"):
    """Создаёт пользователя от имени администратора и возвращает его id."""
    login(client, *ADMIN)
    response = client.post("/api/users", json={
        "username": username,
        "password": password,
        "role": role,
        "email": email or f"{username}@example.com",
        "full_name": username.title(),
    })
    assert response.status_code == 200, response.text
    return response.json()["user"]["id"]


def count_rows(client, model, *conditions):
    """Количество строк model напрямую из базы приложения."""
    async def run():
        async with client.app.state.db.session() as session:
            query = select(func.count()).select_from(model)
            if conditions:
                query = query.where(*conditions)
            return await session.scalar(query)
    return client.portal.call(run)


def run_db(client, fn):
    """Выполняет async fn(session) в цикле приложения."""
    async def run():
        async with client.app.state.db.session() as session:
            return await fn(session)
    return client.portal.call(run)
