import random

import pytest

from app.core.errors import ConsistencyViolation
from app.models.ledger import BalanceEntry, Debt
from app.services.settlement_service import optimize_debts, sort_balances


def make_balances(amounts, currency="USD"):
    return [
        BalanceEntry(group_id="g1", user=user, currency=currency, amount_cents=amount)
        for user, amount in amounts.items()
    ]


def settle(balances, debts):
    """Apply debts as transfers and return the resulting balances."""
    result = {b.user: b.amount_cents for b in balances}
    for debt in debts:
        result[debt.debtor] += debt.amount_cents
        result[debt.creditor] -= debt.amount_cents
    return result


def test_sort_balances_largest_debtor_first():
    balances = make_balances({
        "user1": 1000, "user2": -1000, "user3": 0, "user4": 500, "user5": -500,
    })

    ordered = sort_balances(balances)

    assert [b.user for b in ordered] == ["user2", "user5", "user3", "user4", "user1"]
    # Input is left untouched
    assert [b.user for b in balances] == ["user1", "user2", "user3", "user4", "user5"]


def test_sort_balances_breaks_ties_by_user():
    balances = make_balances({"carol": -300, "alice": -300, "bob": 600})

    assert [b.user for b in sort_balances(balances)] == ["alice", "carol", "bob"]


def test_optimize_two_users():
    balances = make_balances({"user1": 1000, "user2": -1000})

    assert optimize_debts(balances) == [
        Debt(debtor="user2", creditor="user1", currency="USD", amount_cents=1000)
    ]


def test_optimize_five_users_exact_transfers():
    balances = make_balances({
        "user1": 1200, "user2": -670, "user3": 513, "user4": -300, "user5": -743,
    })

    debts = optimize_debts(balances)

    assert [(d.debtor, d.creditor, d.amount_cents) for d in debts] == [
        ("user5", "user1", 743),
        ("user2", "user1", 457),
        ("user2", "user3", 213),
        ("user4", "user3", 300),
    ]
    assert all(v == 0 for v in settle(balances, debts).values())


def test_optimize_equal_magnitudes_advance_both_cursors():
    balances = make_balances({
        "user1": 1000, "user2": -1000, "user3": 1000, "user4": -1000, "user5": 0,
    })

    debts = optimize_debts(balances)

    assert len(debts) == 2
    assert all(d.amount_cents > 0 for d in debts)
    assert all(v == 0 for v in settle(balances, debts).values())


def test_optimize_skips_zero_balances():
    balances = make_balances({"a": 0, "b": 250, "c": 0, "d": -250, "e": 0})

    assert optimize_debts(balances) == [
        Debt(debtor="d", creditor="b", currency="USD", amount_cents=250)
    ]


def test_optimize_empty_and_all_zero():
    assert optimize_debts([]) == []
    assert optimize_debts(make_balances({"a": 0, "b": 0})) == []


def test_optimize_one_creditor_many_debtors():
    balances = make_balances({"a": 600, "b": -200, "c": -200, "d": -200})

    debts = optimize_debts(balances)

    assert [(d.debtor, d.amount_cents) for d in debts] == [("b", 200), ("c", 200), ("d", 200)]
    assert {d.creditor for d in debts} == {"a"}


def test_optimize_rejects_non_zero_sum():
    balances = make_balances({"a": 1000, "b": -999})

    with pytest.raises(ConsistencyViolation):
        optimize_debts(balances)


def test_optimize_rejects_mixed_currencies():
    balances = make_balances({"a": 100, "b": -100}) + make_balances({"c": 0}, currency="EUR")

    with pytest.raises(ConsistencyViolation):
        optimize_debts(balances)


def test_optimize_does_not_mutate_input():
    balances = make_balances({"a": 700, "b": -300, "c": -400})

    optimize_debts(balances)

    assert [b.amount_cents for b in balances] == [700, -300, -400]


def test_optimize_large_group():
    amounts = [
        -29117, -7386, -11928, -7388, -3327, 51679, -70, -3228, -71, 7467,
        3011, 358, 4787, 16826, 13847, -16561, -18899, 11864, -11864, 0,
    ]
    balances = make_balances({f"user{i + 1}": a for i, a in enumerate(amounts)})

    debts = optimize_debts(balances)

    assert all(v == 0 for v in settle(balances, debts).values())
    assert len(debts) <= 19 - 1


@pytest.mark.parametrize("seed", range(25))
def test_optimize_random_balances_settle_within_bound(seed):
    rng = random.Random(seed)
    n = rng.randint(2, 12)
    amounts = [rng.randint(-50000, 50000) for _ in range(n - 1)]
    amounts.append(-sum(amounts))
    # Sprinkle in some exact zeros
    if rng.random() < 0.5:
        amounts[rng.randrange(n)] = 0
        amounts[-1] = 0
        amounts[-1] = -sum(amounts)
    balances = make_balances({f"u{i}": a for i, a in enumerate(amounts)})

    debts = optimize_debts(balances)

    nonzero = sum(1 for a in amounts if a != 0)
    assert len(debts) <= max(0, nonzero - 1)
    assert all(d.amount_cents > 0 for d in debts)
    assert all(v == 0 for v in settle(balances, debts).values())


def test_optimize_is_deterministic():
    amounts = {"d": -500, "a": -500, "c": 400, "b": 600}
    first = optimize_debts(make_balances(amounts))
    second = optimize_debts(make_balances(dict(reversed(list(amounts.items())))))

    assert first == second
