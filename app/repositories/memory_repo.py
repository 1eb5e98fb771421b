"""In-process LedgerRepository. Default backend and test double."""

from typing import Dict, List, Optional, Tuple

from app.models.group import Group
from app.models.ledger import BalanceEntry, Debt
from app.models.payment import PaymentRecord
from app.models.spending import UserSpending
from app.repositories.ledger_repo import LedgerRepository


class InMemoryLedgerRepository(LedgerRepository):
    """Dict-backed storage. Stored models are copied in and out."""

    def __init__(self):
        self.balances: Dict[Tuple[str, str], Dict[str, int]] = {}
        self.payments: Dict[str, PaymentRecord] = {}
        self.debts: Dict[Tuple[str, str], List[Debt]] = {}
        self.groups: Dict[str, Group] = {}
        self.spendings: Dict[Tuple[str, str], Dict[str, UserSpending]] = {}

    async def read_balance(self, group_id: str, currency: str, user: str) -> int:
        return self.balances.get((group_id, currency), {}).get(user, 0)

    async def write_balance(self, group_id: str, currency: str, user: str, amount_cents: int) -> None:
        self.balances.setdefault((group_id, currency), {})[user] = amount_cents

    async def list_balances(self, group_id: str, currency: str) -> List[BalanceEntry]:
        return [
            BalanceEntry(group_id=group_id, user=user, currency=currency, amount_cents=amount)
            for user, amount in self.balances.get((group_id, currency), {}).items()
        ]

    async def read_payment(self, payment_id: str) -> Optional[PaymentRecord]:
        payment = self.payments.get(payment_id)
        return payment.model_copy(deep=True) if payment else None

    async def write_payment(self, payment: PaymentRecord) -> None:
        self.payments[payment.id] = payment.model_copy(deep=True)

    async def delete_payment(self, payment_id: str) -> bool:
        return self.payments.pop(payment_id, None) is not None

    async def list_payments(self, group_id: str, skip: int = 0, limit: Optional[int] = None) -> List[PaymentRecord]:
        records = [p for p in self.payments.values() if p.group_id == group_id]
        # Ties broken by id so insertion order within one instant is kept
        records.sort(key=lambda p: (p.timestamp, p.id), reverse=True)
        end = None if limit is None else skip + limit
        return [p.model_copy(deep=True) for p in records[skip:end]]

    async def write_debts(self, group_id: str, currency: str, debts: List[Debt]) -> None:
        self.debts[(group_id, currency)] = [d.model_copy() for d in debts]

    async def read_debts(self, group_id: str, currency: str) -> List[Debt]:
        return [d.model_copy() for d in self.debts.get((group_id, currency), [])]

    async def get_group(self, group_id: str) -> Optional[Group]:
        group = self.groups.get(group_id)
        return group.model_copy(deep=True) if group else None

    async def add_group_members(self, group_id: str, users: List[str]) -> None:
        group = self.groups.setdefault(group_id, Group(id=group_id))
        for user in users:
            if user not in group.members:
                group.members.append(user)

    async def add_group_currency(self, group_id: str, currency: str) -> None:
        group = self.groups.setdefault(group_id, Group(id=group_id))
        if currency not in group.currencies:
            group.currencies.append(currency)

    async def get_default_currency(self, group_id: str) -> Optional[str]:
        group = self.groups.get(group_id)
        return group.default_currency if group else None

    async def set_default_currency(self, group_id: str, currency: str) -> None:
        self.groups.setdefault(group_id, Group(id=group_id)).default_currency = currency

    async def read_spending(self, group_id: str, currency: str, user: str) -> UserSpending:
        spending = self.spendings.get((group_id, currency), {}).get(user)
        if spending is None:
            return UserSpending(group_id=group_id, user=user, currency=currency)
        return spending.model_copy()

    async def write_spending(self, spending: UserSpending) -> None:
        key = (spending.group_id, spending.currency)
        self.spendings.setdefault(key, {})[spending.user] = spending.model_copy()

    async def list_spendings(self, group_id: str, currency: str) -> List[UserSpending]:
        return [s.model_copy() for s in self.spendings.get((group_id, currency), {}).values()]
