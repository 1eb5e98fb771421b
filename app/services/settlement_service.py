"""
Debt simplification for one (group, currency).

Given balances that net to zero, produce transfers that zero every balance:

1. Sort ascending by amount (largest debtor first, largest creditor last),
   ties broken by user id so the output is deterministic.
2. Walk two cursors inwards, each step settling min(|debtor|, creditor).

This is the greedy min-cash-flow heuristic. It emits at most n - 1 transfers
for n non-zero balances, but it is not guaranteed to find the smallest
possible number of transfers (that problem is NP-hard).
"""

import logging
from typing import List

from app.core.errors import ConsistencyViolation
from app.models.ledger import BalanceEntry, Debt

logger = logging.getLogger(__name__)


def sort_balances(balances: List[BalanceEntry]) -> List[BalanceEntry]:
    """Ascending by amount, then by user. Returns a new list of copies."""
    return sorted(
        (b.model_copy() for b in balances),
        key=lambda b: (b.amount_cents, b.user)
    )


def optimize_debts(balances: List[BalanceEntry]) -> List[Debt]:
    """
    Compute the transfers that settle `balances`.

    All entries must share one currency and sum to zero; anything else is a
    caller bug and raises ConsistencyViolation.
    """
    if not balances:
        return []

    currencies = {b.currency for b in balances}
    if len(currencies) > 1:
        raise ConsistencyViolation(
            f"Cannot settle balances across currencies: {sorted(currencies)}"
        )
    currency = balances[0].currency

    total = sum(b.amount_cents for b in balances)
    if total != 0:
        logger.error("Refusing to settle %s balances summing to %d", currency, total)
        raise ConsistencyViolation(
            f"Balances for {currency} sum to {total}, expected 0"
        )

    ordered = sort_balances(balances)
    debts: List[Debt] = []
    low = 0
    high = len(ordered) - 1

    while low < high:
        debtor = ordered[low]
        creditor = ordered[high]
        amount = min(-debtor.amount_cents, creditor.amount_cents)

        if amount > 0:
            debts.append(Debt(
                debtor=debtor.user,
                creditor=creditor.user,
                currency=currency,
                amount_cents=amount
            ))
            debtor.amount_cents += amount
            creditor.amount_cents -= amount

        # Zero balances fall through here and are skipped
        if debtor.amount_cents >= 0:
            low += 1
        if creditor.amount_cents <= 0:
            high -= 1

    return debts
