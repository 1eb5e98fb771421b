"""
Helpers that turn a total into per-debtor shares.

All amounts are integer minor units. Shares are floored and the leftover
units are handed out one at a time starting from the first user, so no share
is negative and the shares sum exactly to the total.
"""
import math
from fractions import Fraction
from typing import List, Tuple

from app.core.errors import PaymentValidationError
from app.models.payment import PaymentShare
from app.utils.payment_validation import merge_shares, validate_total


def _spread_leftover(total_cents: int, pairs: List[Tuple[str, int]]) -> List[Tuple[str, int]]:
    leftover = total_cents - sum(amount for _, amount in pairs)
    amounts = [amount for _, amount in pairs]
    i = 0
    while leftover > 0:
        amounts[i % len(amounts)] += 1
        leftover -= 1
        i += 1
    return [(user, amount) for (user, _), amount in zip(pairs, amounts)]


def split_equal(total_cents: int, users: List[str]) -> List[PaymentShare]:
    """Split evenly between `users`; the first users absorb the remainder."""
    validate_total(total_cents)
    if not users:
        raise PaymentValidationError("Please provide at least one user to split with")

    amount = total_cents // len(users)
    pairs = _spread_leftover(total_cents, [(user, amount) for user in users])
    return merge_shares(pairs)


def split_exact(
    total_cents: int,
    creditor: str,
    shares: List[Tuple[str, int]],
) -> List[PaymentShare]:
    """
    Use the given amounts as-is.

    Anything left over is the creditor's own share. Shares adding up to more
    than the total are rejected.
    """
    validate_total(total_cents)
    if not creditor:
        raise PaymentValidationError("The payer isn't provided")

    for user, amount in shares:
        if amount < 0:
            raise PaymentValidationError(f"Share for '{user}' is negative: {amount}")

    merged = merge_shares(list(shares))
    share_sum = sum(s.amount_cents for s in merged)
    if share_sum > total_cents:
        raise PaymentValidationError(
            "The sum of the amounts exceeds the total paid"
        )
    if share_sum < total_cents:
        leftover = total_cents - share_sum
        for share in merged:
            if share.debtor == creditor:
                share.amount_cents += leftover
                break
        else:
            merged.append(PaymentShare(debtor=creditor, amount_cents=leftover))
    return merged


def split_ratio(total_cents: int, weights: List[Tuple[str, float]]) -> List[PaymentShare]:
    """Split proportionally to `weights`; the first users absorb the remainder."""
    validate_total(total_cents)
    if not weights:
        raise PaymentValidationError("Please provide at least one user to split with")
    for user, weight in weights:
        if weight <= 0:
            raise PaymentValidationError(f"Ratio for '{user}' must be positive: {weight}")

    # Exact arithmetic so the floored shares never overshoot the total
    exact = [(user, Fraction(weight)) for user, weight in weights]
    weight_sum = sum(weight for _, weight in exact)
    pairs = [
        (user, math.floor(weight * total_cents / weight_sum))
        for user, weight in exact
    ]
    return merge_shares(_spread_leftover(total_cents, pairs))
