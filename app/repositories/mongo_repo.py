"""
MongoLedgerRepository - LedgerRepository on MongoDB (motor).

Collections:
- balances:  one document per (group_id, currency, user)
- payments:  one document per payment record, _id = payment id
- debts:     one document per (group_id, currency) holding the cached list
- groups:    _id = group id, members and currencies arrays, default_currency
- spendings: one document per (group_id, currency, user)

Every driver error is re-raised as StoreError.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app.core.errors import StoreError
from app.models.group import Group
from app.models.ledger import BalanceEntry, Debt
from app.models.payment import PaymentRecord
from app.models.spending import UserSpending
from app.repositories.ledger_repo import LedgerRepository


@asynccontextmanager
async def _store_errors(operation: str):
    try:
        yield
    except PyMongoError as exc:
        raise StoreError(f"{operation} failed: {exc}") from exc


class MongoLedgerRepository(LedgerRepository):
    """Ledger storage backed by a motor database."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.balances = db["balances"]
        self.payments = db["payments"]
        self.debts = db["debts"]
        self.groups = db["groups"]
        self.spendings = db["spendings"]

    # ===== BALANCES =====

    async def read_balance(self, group_id: str, currency: str, user: str) -> int:
        async with _store_errors("read_balance"):
            doc = await self.balances.find_one(
                {"group_id": group_id, "currency": currency, "user": user}
            )
        return doc["amount_cents"] if doc else 0

    async def write_balance(self, group_id: str, currency: str, user: str, amount_cents: int) -> None:
        async with _store_errors("write_balance"):
            await self.balances.update_one(
                {"group_id": group_id, "currency": currency, "user": user},
                {
                    "$set": {
                        "amount_cents": amount_cents,
                        "updated_at": datetime.now(timezone.utc)
                    }
                },
                upsert=True
            )

    async def list_balances(self, group_id: str, currency: str) -> List[BalanceEntry]:
        async with _store_errors("list_balances"):
            docs = await self.balances.find(
                {"group_id": group_id, "currency": currency}
            ).to_list(None)
        return [
            BalanceEntry(
                group_id=doc["group_id"],
                user=doc["user"],
                currency=doc["currency"],
                amount_cents=doc["amount_cents"]
            )
            for doc in docs
        ]

    # ===== PAYMENTS =====

    async def read_payment(self, payment_id: str) -> Optional[PaymentRecord]:
        async with _store_errors("read_payment"):
            doc = await self.payments.find_one({"_id": payment_id})
        if doc:
            return PaymentRecord(**doc)
        return None

    async def write_payment(self, payment: PaymentRecord) -> None:
        doc = payment.model_dump(by_alias=True)
        async with _store_errors("write_payment"):
            await self.payments.replace_one({"_id": payment.id}, doc, upsert=True)

    async def delete_payment(self, payment_id: str) -> bool:
        async with _store_errors("delete_payment"):
            result = await self.payments.delete_one({"_id": payment_id})
        return result.deleted_count > 0

    async def list_payments(self, group_id: str, skip: int = 0, limit: Optional[int] = None) -> List[PaymentRecord]:
        cursor = self.payments.find({"group_id": group_id}).sort(
            [("timestamp", -1), ("_id", -1)]
        ).skip(skip)
        if limit is not None:
            cursor = cursor.limit(limit)
        async with _store_errors("list_payments"):
            docs = await cursor.to_list(None)
        return [PaymentRecord(**doc) for doc in docs]

    # ===== DEBTS =====

    async def write_debts(self, group_id: str, currency: str, debts: List[Debt]) -> None:
        async with _store_errors("write_debts"):
            await self.debts.update_one(
                {"group_id": group_id, "currency": currency},
                {
                    "$set": {
                        "debts": [d.model_dump() for d in debts],
                        "updated_at": datetime.now(timezone.utc)
                    }
                },
                upsert=True
            )

    async def read_debts(self, group_id: str, currency: str) -> List[Debt]:
        async with _store_errors("read_debts"):
            doc = await self.debts.find_one({"group_id": group_id, "currency": currency})
        if not doc:
            return []
        return [Debt(**d) for d in doc.get("debts", [])]

    # ===== GROUPS =====

    async def get_group(self, group_id: str) -> Optional[Group]:
        async with _store_errors("get_group"):
            doc = await self.groups.find_one({"_id": group_id})
        if doc:
            return Group(**doc)
        return None

    async def add_group_members(self, group_id: str, users: List[str]) -> None:
        async with _store_errors("add_group_members"):
            await self.groups.update_one(
                {"_id": group_id},
                {
                    "$addToSet": {"members": {"$each": users}},
                    "$setOnInsert": {"currencies": []}
                },
                upsert=True
            )

    async def add_group_currency(self, group_id: str, currency: str) -> None:
        async with _store_errors("add_group_currency"):
            await self.groups.update_one(
                {"_id": group_id},
                {
                    "$addToSet": {"currencies": currency},
                    "$setOnInsert": {"members": []}
                },
                upsert=True
            )

    async def get_default_currency(self, group_id: str) -> Optional[str]:
        async with _store_errors("get_default_currency"):
            doc = await self.groups.find_one(
                {"_id": group_id}, {"default_currency": 1}
            )
        return doc.get("default_currency") if doc else None

    async def set_default_currency(self, group_id: str, currency: str) -> None:
        async with _store_errors("set_default_currency"):
            await self.groups.update_one(
                {"_id": group_id},
                {
                    "$set": {"default_currency": currency},
                    "$setOnInsert": {"members": [], "currencies": []}
                },
                upsert=True
            )

    # ===== SPENDINGS =====

    async def read_spending(self, group_id: str, currency: str, user: str) -> UserSpending:
        async with _store_errors("read_spending"):
            doc = await self.spendings.find_one(
                {"group_id": group_id, "currency": currency, "user": user}
            )
        if not doc:
            return UserSpending(group_id=group_id, user=user, currency=currency)
        doc.pop("_id", None)
        return UserSpending(**doc)

    async def write_spending(self, spending: UserSpending) -> None:
        async with _store_errors("write_spending"):
            await self.spendings.update_one(
                {
                    "group_id": spending.group_id,
                    "currency": spending.currency,
                    "user": spending.user
                },
                {
                    "$set": {
                        "spent_cents": spending.spent_cents,
                        "paid_cents": spending.paid_cents
                    }
                },
                upsert=True
            )

    async def list_spendings(self, group_id: str, currency: str) -> List[UserSpending]:
        async with _store_errors("list_spendings"):
            docs = await self.spendings.find(
                {"group_id": group_id, "currency": currency}
            ).to_list(None)
        result = []
        for doc in docs:
            doc.pop("_id", None)
            result.append(UserSpending(**doc))
        return result
