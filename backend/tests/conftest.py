"""Фикстуры для тестов API."""
import os
import shutil
import tempfile
from pathlib import Path

import pytest

# Отдельная SQLite-база и каталог копий; задаются до импорта приложения
_TMP = Path(tempfile.mkdtemp(prefix="servicecenter-tests-"))
TEST_DB = _TMP / "test.db"
BACKUP_DIR = _TMP / "backups"
API_TOKEN = "test-token"

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB}"
os.environ["BACKUP_DIR"] = str(BACKUP_DIR)
os.environ["API_TOKEN"] = API_TOKEN
os.environ["JWT_SECRET"] = "test-secret-key-with-enough-length-for-hs256"


@pytest.fixture
def fresh_db():
    """Пустая база, пустой каталог копий, синхронизация включена."""
    from servicecenter.core.sync_status import sync_state

    if TEST_DB.exists():
        TEST_DB.unlink()
    shutil.rmtree(BACKUP_DIR, ignore_errors=True)
    sync_state.set_running(True)
    yield


@pytest.fixture
def client(fresh_db):
    """Тестовый клиент приложения (с запуском lifespan: таблицы и начальные данные)."""
    from fastapi.testclient import TestClient
    from servicecenter.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers(client):
    """Заголовок Authorization с токеном из /api/server-info."""
    r = client.get("/api/server-info")
    assert r.status_code == 200
    token = r.json()["token"]
    assert token == API_TOKEN
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_repair(client, auth_headers):
    """Создать квитанцию через API, вернуть ответ."""

    def _make(**fields):
        body = {"clientName": "Ivan Petrenko", "deviceName": "iPhone 11", "costLabor": 300}
        body.update(fields)
        r = client.post("/api/repairs", json=body, headers=auth_headers)
        assert r.status_code == 201, r.text
        return r.json()

    return _make


@pytest.fixture
def activate_register(client, auth_headers):
    """Включить кассу с начальными остатками."""

    def _activate(cash=1000, card=500):
        r = client.post(
            "/api/cash-register/activate",
            json={"initialCash": cash, "initialCard": card},
            headers=auth_headers,
        )
        assert r.status_code == 200, r.text
        return r.json()

    return _activate


@pytest.fixture
def get_balances(client, auth_headers):
    """Текущие остатки кассы (наличные, карта)."""

    def _get():
        data = client.get("/api/cash-register/balances", headers=auth_headers).json()
        return data["cash"], data["card"]

    return _get
