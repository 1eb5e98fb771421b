"""
Payment record model.

A payment is one person (the creditor) fronting `total_cents` for the group,
split into per-debtor shares. The creditor's own share, if any, is one of the
`debts` entries.

Invariants (checked in app.utils.payment_validation):
- total_cents > 0
- every share amount_cents >= 0
- sum(share.amount_cents) == total_cents
"""

from typing import Dict, List
from datetime import datetime

from pydantic import Field

from app.models.base import LedgerModel, _utcnow, new_id


class PaymentShare(LedgerModel):
    debtor: str
    amount_cents: int


class PaymentRecord(LedgerModel):
    id: str = Field(default_factory=new_id, alias="_id")
    group_id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    description: str = ""
    creditor: str
    currency: str
    total_cents: int
    debts: List[PaymentShare] = []
    is_pay_back: bool = False

    def users(self) -> List[str]:
        """Creditor first, then debtors in order, without duplicates."""
        seen = [self.creditor]
        for share in self.debts:
            if share.debtor not in seen:
                seen.append(share.debtor)
        return seen

    def balance_deltas(self) -> Dict[str, int]:
        """
        Signed balance change this record contributes.

        Creditor gains the total, each debtor loses their share. A creditor
        who also owes a share nets out in the same entry.
        """
        deltas: Dict[str, int] = {self.creditor: self.total_cents}
        for share in self.debts:
            deltas[share.debtor] = deltas.get(share.debtor, 0) - share.amount_cents
        return deltas

    def spending_deltas(self) -> Dict[str, Dict[str, int]]:
        """Per-user (spent, paid) contribution. Pay-backs contribute nothing."""
        if self.is_pay_back:
            return {}
        deltas: Dict[str, Dict[str, int]] = {
            self.creditor: {"spent_cents": 0, "paid_cents": self.total_cents}
        }
        for share in self.debts:
            entry = deltas.setdefault(share.debtor, {"spent_cents": 0, "paid_cents": 0})
            entry["spent_cents"] += share.amount_cents
        return deltas
