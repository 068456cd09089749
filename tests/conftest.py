from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Garante que o pacote cardhub seja importável durante os testes locais
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cardhub.app import build_services, create_app  # noqa: E402
from cardhub.core import config as core_config  # noqa: E402
from cardhub.db import session as db_session  # noqa: E402
from cardhub.domain.policy import Principal  # noqa: E402
from cardhub.repositories import MemoryDocumentStore, SQLDocumentStore  # noqa: E402


@pytest.fixture()
def settings(monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://cards.test")
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("FREE_CARD_LIMIT", "1")
    monkeypatch.setenv("PRO_CARD_LIMIT", "10")
    monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "1000")
    core_config.get_settings.cache_clear()
    yield core_config.get_settings()
    core_config.get_settings.cache_clear()


@pytest.fixture()
def store():
    return MemoryDocumentStore()


@pytest.fixture()
def services(store, settings):
    return build_services(store, settings)


@pytest.fixture()
def client(store, settings):
    return TestClient(create_app(store=store, settings=settings))


@pytest.fixture()
def sql_store(tmp_path, monkeypatch, settings):
    """SQLite temporário; caches de settings/engine são limpos antes e depois."""
    db_file = tmp_path / "cardhub.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]

    store = SQLDocumentStore()
    store.create_schema()

    yield store

    db_session.get_engine().dispose()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]
    core_config.get_settings.cache_clear()


def user(uid: str, **kwargs) -> Principal:
    return Principal(uid=uid, **kwargs)


def headers_for(uid: str | None, *, admin: bool = False, name: str = "") -> dict:
    if uid is None:
        return {}
    headers = {"X-User-Id": uid}
    if admin:
        headers["X-User-Admin"] = "true"
    if name:
        headers["X-User-Name"] = name
    return headers
