"""
Payment request/response schemas.

Amounts are integer minor units (cents). A create or edit request can give
exact amounts per debtor, or ask for an equal or ratio split of the total.
A request without a currency uses the group's default currency.
"""

from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from pydantic import BaseModel, ConfigDict

from app.core.errors import PaymentValidationError
from app.models.ledger import Debt
from app.models.payment import PaymentShare
from app.utils.splits import split_equal, split_exact, split_ratio


class SplitMode(str, Enum):
    EXACT = "exact"
    EQUAL = "equal"
    RATIO = "ratio"


class PaymentShareIn(BaseModel):
    debtor: str
    amount_cents: Optional[int] = None  # exact split
    ratio: Optional[float] = None       # ratio split


def build_shares(
    split: SplitMode,
    debts: List[PaymentShareIn],
    total_cents: int,
    creditor: str,
) -> List[PaymentShare]:
    """Turn the requested split into concrete per-debtor amounts."""
    if split == SplitMode.EQUAL:
        return split_equal(total_cents, [d.debtor for d in debts])

    if split == SplitMode.RATIO:
        if any(d.ratio is None for d in debts):
            raise PaymentValidationError("Every debtor needs a ratio for a ratio split")
        return split_ratio(total_cents, [(d.debtor, d.ratio) for d in debts])

    if any(d.amount_cents is None for d in debts):
        raise PaymentValidationError("Every debtor needs an amount for an exact split")
    return split_exact(
        total_cents,
        creditor,
        [(d.debtor, d.amount_cents) for d in debts]
    )


class PaymentCreate(BaseModel):
    description: str = ""
    creditor: str
    currency: Optional[str] = None
    total_cents: int
    split: SplitMode = SplitMode.EXACT
    debts: List[PaymentShareIn]
    timestamp: Optional[datetime] = None

    def build_shares(self) -> List[PaymentShare]:
        return build_shares(self.split, self.debts, self.total_cents, self.creditor)


class PaymentUpdate(BaseModel):
    """
    Fields left out keep their current value.

    New debts are split against the new total and creditor, or the current
    ones when those are not being changed.
    """
    description: Optional[str] = None
    creditor: Optional[str] = None
    currency: Optional[str] = None
    total_cents: Optional[int] = None
    split: SplitMode = SplitMode.EXACT
    debts: Optional[List[PaymentShareIn]] = None

    def share_builder(self) -> Optional[Callable[[int, str], List[PaymentShare]]]:
        if self.debts is None:
            return None
        return lambda total_cents, creditor: build_shares(
            self.split, self.debts, total_cents, creditor
        )


class RepaymentIn(BaseModel):
    recipient: str
    amount_cents: int


class PayBackCreate(BaseModel):
    payer: str
    currency: Optional[str] = None
    repayments: List[RepaymentIn]
    timestamp: Optional[datetime] = None

class PaymentResponse(BaseModel):
    id: str
    group_id: str
    timestamp: datetime
    description: str
    creditor: str
    currency: str
    total_cents: int
    debts: List[PaymentShare]
    is_pay_back: bool

    model_config = ConfigDict(from_attributes=True)


class PaymentWithDebtsResponse(BaseModel):
    payment: PaymentResponse
    debts: List[Debt]


class PaymentEditResponse(BaseModel):
    """`debts` is null when only the description changed."""
    payment: PaymentResponse
    debts: Optional[List[Debt]] = None
