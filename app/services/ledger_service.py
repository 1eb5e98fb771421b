"""
LedgerService - the only writer of balances and cached debts.

Every balance change goes through `apply_deltas`:
1. check the deltas net to zero
2. read-modify-write each user's balance
3. re-read all balances for (group, currency) and re-run the optimizer
4. replace the cached debt list wholesale

Mutations for one (group, currency) are serialised by a per-key asyncio lock.
Multi-step operations (edit = undo + reapply) open a `session` covering every
currency they touch and apply all their deltas inside it.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Mapping, Optional, Tuple

from app.core.errors import ConsistencyViolation
from app.core.locks import KeyedLock
from app.models.ledger import BalanceEntry, Debt
from app.models.spending import UserSpending
from app.repositories.ledger_repo import LedgerRepository
from app.services.settlement_service import optimize_debts

logger = logging.getLogger(__name__)

Deltas = Iterable[Tuple[str, int]]


def _as_pairs(deltas) -> List[Tuple[str, int]]:
    if isinstance(deltas, Mapping):
        return list(deltas.items())
    return list(deltas)


class LedgerSession:
    """Balance mutation while holding the locks for `currencies`."""

    def __init__(self, repo: LedgerRepository, group_id: str, currencies: List[str]):
        self.repo = repo
        self.group_id = group_id
        self.currencies = currencies

    def _check_held(self, currency: str) -> None:
        if currency not in self.currencies:
            raise ConsistencyViolation(
                f"Session for {self.group_id} does not hold currency {currency}"
            )

    async def apply_deltas(self, currency: str, deltas: Deltas) -> List[Debt]:
        """Apply signed balance changes and return the recomputed debts."""
        self._check_held(currency)
        pairs = _as_pairs(deltas)

        delta_sum = sum(amount for _, amount in pairs)
        if delta_sum != 0:
            logger.error(
                "Rejected deltas for group %s %s summing to %d: %s",
                self.group_id, currency, delta_sum, pairs
            )
            raise ConsistencyViolation(
                f"Deltas for {currency} sum to {delta_sum}, expected 0"
            )

        await self.repo.add_group_currency(self.group_id, currency)
        for user, amount in pairs:
            if amount == 0:
                continue
            current = await self.repo.read_balance(self.group_id, currency, user)
            await self.repo.write_balance(self.group_id, currency, user, current + amount)
        logger.debug("Applied %d deltas to group %s %s", len(pairs), self.group_id, currency)

        return await self.resettle(currency)

    async def resettle(self, currency: str) -> List[Debt]:
        """Recompute and store the debt list from current balances."""
        self._check_held(currency)
        balances = await self.repo.list_balances(self.group_id, currency)
        debts = optimize_debts(balances)
        await self.repo.write_debts(self.group_id, currency, debts)
        logger.debug(
            "Settled group %s %s into %d transfers", self.group_id, currency, len(debts)
        )
        return debts

    async def apply_spendings(self, currency: str, changes: Mapping[str, Mapping[str, int]]) -> None:
        """
        Add to per-user spent/paid totals.

        Totals never go below zero; that would mean an undo removed more than
        was ever added.
        """
        self._check_held(currency)
        for user, change in changes.items():
            current = await self.repo.read_spending(self.group_id, currency, user)
            updated = UserSpending(
                group_id=self.group_id,
                user=user,
                currency=currency,
                spent_cents=current.spent_cents + change.get("spent_cents", 0),
                paid_cents=current.paid_cents + change.get("paid_cents", 0)
            )
            if updated.spent_cents < 0 or updated.paid_cents < 0:
                logger.error("Spending for %s in group %s %s went negative", user, self.group_id, currency)
                raise ConsistencyViolation(
                    f"Spending for '{user}' in {currency} computed to be negative"
                )
            await self.repo.write_spending(updated)


class LedgerService:
    """Entry point for balance mutation and balance/debt reads."""

    def __init__(self, repo: LedgerRepository, locks: Optional[KeyedLock] = None):
        self.repo = repo
        self.locks = locks or KeyedLock()

    @asynccontextmanager
    async def session(self, group_id: str, *currencies: str) -> AsyncIterator[LedgerSession]:
        """Hold the (group, currency) locks for every currency given."""
        keys = [(group_id, currency) for currency in currencies]
        async with self.locks.hold(keys) as held:
            yield LedgerSession(self.repo, group_id, [currency for _, currency in held])

    async def apply_deltas(self, group_id: str, currency: str, deltas: Deltas) -> List[Debt]:
        async with self.session(group_id, currency) as session:
            return await session.apply_deltas(currency, deltas)

    async def get_balances(self, group_id: str, currency: str, include_zero: bool = False) -> List[BalanceEntry]:
        balances = await self.repo.list_balances(group_id, currency)
        if not include_zero:
            balances = [b for b in balances if b.amount_cents != 0]
        return sorted(balances, key=lambda b: (b.amount_cents, b.user))

    async def get_debts(self, group_id: str, currency: str) -> List[Debt]:
        return await self.repo.read_debts(group_id, currency)

