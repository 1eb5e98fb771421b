"""
LedgerRepository - persistence interface consumed by the ledger engine.

The engine never talks to a database directly; it reads and writes balances,
payment records, cached debts, groups and spendings through this interface.

Semantics every implementation must honour:
- read_balance returns 0 for a user with no entry.
- write_* is last-write-wins; callers provide their own exclusion.
- write_debts replaces the whole cached list for (group, currency).
- Failures surface as app.core.errors.StoreError.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from app.models.group import Group
from app.models.ledger import BalanceEntry, Debt
from app.models.payment import PaymentRecord
from app.models.spending import UserSpending


class LedgerRepository(ABC):
    """Repository for balances, payments, debts, groups and spendings."""

    # ===== BALANCES =====

    @abstractmethod
    async def read_balance(self, group_id: str, currency: str, user: str) -> int:
        ...

    @abstractmethod
    async def write_balance(self, group_id: str, currency: str, user: str, amount_cents: int) -> None:
        ...

    @abstractmethod
    async def list_balances(self, group_id: str, currency: str) -> List[BalanceEntry]:
        ...

    # ===== PAYMENTS =====

    @abstractmethod
    async def read_payment(self, payment_id: str) -> Optional[PaymentRecord]:
        """Return the record or None if it does not exist."""

    @abstractmethod
    async def write_payment(self, payment: PaymentRecord) -> None:
        """Insert or fully replace a record."""

    @abstractmethod
    async def delete_payment(self, payment_id: str) -> bool:
        """Remove a record. Returns False if it did not exist."""

    @abstractmethod
    async def list_payments(self, group_id: str, skip: int = 0, limit: Optional[int] = None) -> List[PaymentRecord]:
        """Records of a group, newest first."""

    # ===== DEBTS =====

    @abstractmethod
    async def write_debts(self, group_id: str, currency: str, debts: List[Debt]) -> None:
        ...

    @abstractmethod
    async def read_debts(self, group_id: str, currency: str) -> List[Debt]:
        ...

    # ===== GROUPS =====

    @abstractmethod
    async def get_group(self, group_id: str) -> Optional[Group]:
        ...

    @abstractmethod
    async def add_group_members(self, group_id: str, users: List[str]) -> None:
        """Add users not yet in the group. Creates the group if needed."""

    @abstractmethod
    async def add_group_currency(self, group_id: str, currency: str) -> None:
        ...

    @abstractmethod
    async def get_default_currency(self, group_id: str) -> Optional[str]:
        """The group's own default currency, or None if it never set one."""

    @abstractmethod
    async def set_default_currency(self, group_id: str, currency: str) -> None:
        """Creates the group if needed."""

    # ===== SPENDINGS =====

    @abstractmethod
    async def read_spending(self, group_id: str, currency: str, user: str) -> UserSpending:
        """Return the user's totals, zero-valued if absent."""

    @abstractmethod
    async def write_spending(self, spending: UserSpending) -> None:
        ...

    @abstractmethod
    async def list_spendings(self, group_id: str, currency: str) -> List[UserSpending]:
        ...
