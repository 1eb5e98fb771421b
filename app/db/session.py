"""
Store selection for the running app.

`init_store` picks the LedgerRepository named by settings.STORE_BACKEND and
builds the services on top of it; `get_payment_service` hands them to the
API layer.
"""
from typing import Optional

from app.core.config import settings
from app.db.mongo import connect_to_mongo, disconnect_from_mongo, get_db
from app.repositories.ledger_repo import LedgerRepository
from app.repositories.memory_repo import InMemoryLedgerRepository
from app.repositories.mongo_repo import MongoLedgerRepository
from app.services.ledger_service import LedgerService
from app.services.payment_service import PaymentService

class StoreState:
    repository: Optional[LedgerRepository] = None
    payment_service: Optional[PaymentService] = None

store = StoreState()

async def init_store(backend: Optional[str] = None) -> LedgerRepository:
    """Open the configured backend and wire the services."""
    backend = (backend or settings.STORE_BACKEND).lower()
    if backend == "mongo":
        await connect_to_mongo()
        repository: LedgerRepository = MongoLedgerRepository(get_db())
    elif backend == "memory":
        repository = InMemoryLedgerRepository()
    else:
        raise ValueError(f"Unknown STORE_BACKEND: {backend}")

    store.repository = repository
    store.payment_service = PaymentService(repository, LedgerService(repository))
    return repository

async def close_store():
    if isinstance(store.repository, MongoLedgerRepository):
        await disconnect_from_mongo()
    store.repository = None
    store.payment_service = None


def get_payment_service() -> PaymentService:
    if store.payment_service is None:
        raise RuntimeError("Store not initialised; call init_store() first")
    return store.payment_service
