"""Payment validation utilities."""
from typing import List, Tuple

from app.core.errors import PaymentValidationError
from app.models.payment import PaymentShare


def normalize_currency(currency: str) -> str:
    """Upper-case ISO style code. Empty codes are rejected."""
    code = (currency or "").strip().upper()
    if not code:
        raise PaymentValidationError("Currency code is required")
    return code


def validate_total(total_cents: int) -> None:
    if total_cents <= 0:
        raise PaymentValidationError(
            f"Payment total must be positive: {total_cents}"
        )


def validate_debts(debts: List[PaymentShare], total_cents: int) -> None:
    """
    Validate the split of a payment.

    Rules:
    - at least one debt entry
    - every amount is non-negative
    - amounts sum exactly to the total
    """
    if not debts:
        raise PaymentValidationError("Payment must have at least one debt entry")

    for share in debts:
        if not share.debtor:
            raise PaymentValidationError("Debt entry has no debtor")
        if share.amount_cents < 0:
            raise PaymentValidationError(
                f"Debt for '{share.debtor}' has negative amount: {share.amount_cents}"
            )

    debt_sum = sum(share.amount_cents for share in debts)
    if debt_sum != total_cents:
        raise PaymentValidationError(
            f"Debts sum ({debt_sum}) does not equal total ({total_cents})"
        )


def validate_payment(creditor: str, total_cents: int, debts: List[PaymentShare]) -> None:
    if not creditor:
        raise PaymentValidationError("Payment must have a creditor")
    validate_total(total_cents)
    validate_debts(debts, total_cents)


def merge_shares(pairs: List[Tuple[str, int]]) -> List[PaymentShare]:
    """Combine repeated debtors into one share, keeping first-seen order."""
    merged: List[PaymentShare] = []
    index = {}
    for debtor, amount in pairs:
        if debtor in index:
            merged[index[debtor]].amount_cents += amount
        else:
            index[debtor] = len(merged)
            merged.append(PaymentShare(debtor=debtor, amount_cents=amount))
    return merged
