"""
Ledger models.

- BalanceEntry: running signed balance per (group, currency, user).
  Positive means the group owes the user, negative means the user owes the
  group. For each (group, currency) the entries sum to zero at rest.
- Debt: one proposed transfer, derived from balances and replaced wholesale
  whenever they change. Never authoritative.
"""

from pydantic import Field

from app.models.base import LedgerModel


class BalanceEntry(LedgerModel):
    group_id: str
    user: str
    currency: str
    amount_cents: int = 0


class Debt(LedgerModel):
    debtor: str
    creditor: str
    currency: str
    amount_cents: int = Field(gt=0)
