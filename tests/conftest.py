from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.logging_config import reset_logging
from app.main import app
from app.repositories.memory_repo import InMemoryLedgerRepository
from app.services.ledger_service import LedgerService
from app.services.payment_service import PaymentService

LEDGER_COLLECTIONS = ("balances", "payments", "debts", "groups", "spendings")


@pytest.fixture
def repo():
    """Fresh in-memory store for each test."""
    return InMemoryLedgerRepository()


@pytest.fixture
def ledger(repo):
    return LedgerService(repo)


@pytest.fixture
def service(repo, ledger):
    return PaymentService(repo, ledger)


def make_cursor(docs=None):
    """Mock motor cursor supporting sort/skip/limit chaining and to_list."""
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=list(docs or []))
    return cursor


@pytest.fixture
def cursor_factory():
    return make_cursor


@pytest.fixture
def mock_db():
    """Mock motor database; db["name"] returns a per-collection mock."""
    collections = {}
    for name in LEDGER_COLLECTIONS:
        collection = MagicMock()
        collection.find_one = AsyncMock(return_value=None)
        collection.update_one = AsyncMock()
        collection.replace_one = AsyncMock()
        collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
        collection.find = MagicMock(return_value=make_cursor())
        collections[name] = collection

    db = MagicMock()
    db.__getitem__.side_effect = collections.__getitem__
    return db


@pytest.fixture
def client(monkeypatch):
    """FastAPI test client on a fresh in-memory store."""
    monkeypatch.setattr(settings, "STORE_BACKEND", "memory")
    with TestClient(app) as client:
        yield client
    reset_logging()
