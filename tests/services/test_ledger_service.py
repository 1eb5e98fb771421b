import asyncio

import pytest

from app.core.errors import ConsistencyViolation
from app.models.ledger import Debt
from app.repositories.memory_repo import InMemoryLedgerRepository
from app.services.ledger_service import LedgerService


class InterleavingRepository(InMemoryLedgerRepository):
    """Yields to the event loop between every read and write."""

    async def read_balance(self, group_id, currency, user):
        await asyncio.sleep(0)
        return await super().read_balance(group_id, currency, user)

    async def write_balance(self, group_id, currency, user, amount_cents):
        await asyncio.sleep(0)
        await super().write_balance(group_id, currency, user, amount_cents)


@pytest.mark.asyncio
async def test_apply_deltas_updates_balances_and_debts(ledger, repo):
    debts = await ledger.apply_deltas("g1", "USD", [("alice", 3000), ("bob", -1500), ("carol", -1500)])

    assert await repo.read_balance("g1", "USD", "alice") == 3000
    assert await repo.read_balance("g1", "USD", "bob") == -1500
    assert debts == [
        Debt(debtor="bob", creditor="alice", currency="USD", amount_cents=1500),
        Debt(debtor="carol", creditor="alice", currency="USD", amount_cents=1500),
    ]
    assert await repo.read_debts("g1", "USD") == debts


@pytest.mark.asyncio
async def test_apply_deltas_accepts_mapping(ledger, repo):
    await ledger.apply_deltas("g1", "USD", {"alice": 500, "bob": -500})

    assert await repo.read_balance("g1", "USD", "bob") == -500


@pytest.mark.asyncio
async def test_apply_deltas_accumulates(ledger, repo):
    await ledger.apply_deltas("g1", "USD", [("alice", 1000), ("bob", -1000)])
    await ledger.apply_deltas("g1", "USD", [("bob", 400), ("carol", -400)])

    assert await repo.read_balance("g1", "USD", "alice") == 1000
    assert await repo.read_balance("g1", "USD", "bob") == -600
    assert await repo.read_balance("g1", "USD", "carol") == -400


@pytest.mark.asyncio
async def test_apply_deltas_rejects_non_zero_sum(ledger, repo):
    with pytest.raises(ConsistencyViolation):
        await ledger.apply_deltas("g1", "USD", [("alice", 1000), ("bob", -900)])

    assert await repo.list_balances("g1", "USD") == []
    assert await repo.get_group("g1") is None


@pytest.mark.asyncio
async def test_debts_replaced_wholesale(ledger, repo):
    await ledger.apply_deltas("g1", "USD", [("alice", 1000), ("bob", -1000)])
    debts = await ledger.apply_deltas("g1", "USD", [("alice", -1000), ("bob", 1000)])

    assert debts == []
    assert await repo.read_debts("g1", "USD") == []


@pytest.mark.asyncio
async def test_currencies_are_tracked_separately(ledger, repo):
    await ledger.apply_deltas("g1", "USD", [("alice", 1000), ("bob", -1000)])
    await ledger.apply_deltas("g1", "EUR", [("bob", 200), ("alice", -200)])

    group = await repo.get_group("g1")
    assert group.currencies == ["USD", "EUR"]
    assert await ledger.get_debts("g1", "EUR") == [
        Debt(debtor="alice", creditor="bob", currency="EUR", amount_cents=200)
    ]


@pytest.mark.asyncio
async def test_get_balances_hides_zero_entries(ledger):
    await ledger.apply_deltas("g1", "USD", [("alice", 1000), ("bob", -1000)])
    await ledger.apply_deltas("g1", "USD", [("alice", -1000), ("bob", 1000)])
    await ledger.apply_deltas("g1", "USD", [("carol", 50), ("dave", -50)])

    visible = await ledger.get_balances("g1", "USD")
    everything = await ledger.get_balances("g1", "USD", include_zero=True)

    assert [(b.user, b.amount_cents) for b in visible] == [("dave", -50), ("carol", 50)]
    assert len(everything) == 4


@pytest.mark.asyncio
async def test_session_holds_lock_for_each_currency(ledger):
    async with ledger.session("g1", "USD", "EUR") as session:
        assert ledger.locks.locked(("g1", "USD"))
        assert ledger.locks.locked(("g1", "EUR"))
        assert not ledger.locks.locked(("g2", "USD"))
        assert session.currencies == ["EUR", "USD"]

    assert not ledger.locks.locked(("g1", "USD"))


@pytest.mark.asyncio
async def test_session_rejects_currency_it_does_not_hold(ledger):
    async with ledger.session("g1", "USD") as session:
        with pytest.raises(ConsistencyViolation):
            await session.apply_deltas("EUR", [("alice", 1), ("bob", -1)])


@pytest.mark.asyncio
async def test_negative_spending_is_a_violation(ledger):
    async with ledger.session("g1", "USD") as session:
        await session.apply_spendings("USD", {"alice": {"spent_cents": 100}})
        with pytest.raises(ConsistencyViolation):
            await session.apply_spendings("USD", {"alice": {"spent_cents": -101}})


@pytest.mark.asyncio
async def test_concurrent_deltas_are_not_lost():
    repo = InterleavingRepository()
    ledger = LedgerService(repo)

    await asyncio.gather(*[
        ledger.apply_deltas("g1", "USD", [("alice", 100), (f"user{i % 5}", -100)])
        for i in range(50)
    ])

    balances = {b.user: b.amount_cents for b in await repo.list_balances("g1", "USD")}
    assert balances["alice"] == 5000
    assert all(balances[f"user{i}"] == -1000 for i in range(5))
    assert sum(balances.values()) == 0


@pytest.mark.asyncio
async def test_session_blocks_other_writers_until_released(ledger, repo):
    order = []

    async def writer():
        await ledger.apply_deltas("g1", "USD", [("bob", 10), ("carol", -10)])
        order.append("writer")

    async with ledger.session("g1", "USD") as session:
        task = asyncio.create_task(writer())
        await asyncio.sleep(0)
        await session.apply_deltas("USD", [("alice", 10), ("bob", -10)])
        order.append("session")

    await task
    assert order == ["session", "writer"]
    assert await repo.read_balance("g1", "USD", "bob") == 0
