"""
PaymentService - add, edit and delete payment records.

Each operation turns a change to the payment log into balance deltas and
pushes them through LedgerService. Balances are a running total, not a
replay of history, so edit and delete work by applying the exact negation of
what the old record contributed, then (for edit) the new record's
contribution.

Not atomic across entities: if the store fails part-way the operation stops
and the error propagates. The possible partial states are
- add:    record written, balances not yet updated
- edit:   record rewritten, balances for the old or new values not applied
- delete: balances reverted, record still present
Each is logged at WARNING with the payment id.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel

from app.core.config import settings
from app.core.errors import PaymentNotFoundError, PaymentValidationError, StoreError
from app.models.group import Group
from app.models.ledger import BalanceEntry, Debt
from app.models.payment import PaymentRecord, PaymentShare
from app.models.spending import UserSpending
from app.repositories.ledger_repo import LedgerRepository
from app.services.ledger_service import LedgerService, LedgerSession
from app.utils.payment_validation import merge_shares, normalize_currency, validate_payment

logger = logging.getLogger(__name__)

ShareInput = Union[PaymentShare, Tuple[str, int]]
ShareBuilder = Callable[[int, str], List[PaymentShare]]


class PaymentOutcome(BaseModel):
    """A payment together with the debts recomputed after adding or removing it."""
    payment: PaymentRecord
    debts: List[Debt]


def _to_shares(debts: Sequence[ShareInput]) -> List[PaymentShare]:
    shares = []
    for entry in debts:
        if isinstance(entry, PaymentShare):
            shares.append(entry.model_copy())
        else:
            debtor, amount = entry
            shares.append(PaymentShare(debtor=debtor, amount_cents=amount))
    return shares


def _negate(deltas: Dict[str, int]) -> Dict[str, int]:
    return {user: -amount for user, amount in deltas.items()}


def _negate_spendings(deltas: Dict[str, Dict[str, int]]) -> Dict[str, Dict[str, int]]:
    return {
        user: {field: -amount for field, amount in change.items()}
        for user, change in deltas.items()
    }


@contextmanager
def _partial_on_store_error(operation: str, payment_id: str):
    try:
        yield
    except StoreError:
        logger.warning(
            "%s of payment %s aborted by a store error; ledger may be partially applied",
            operation, payment_id, exc_info=True
        )
        raise


class PaymentService:
    """Orchestrates the payment record lifecycle and ledger reads."""

    def __init__(self, repo: LedgerRepository, ledger: Optional[LedgerService] = None):
        self.repo = repo
        self.ledger = ledger or LedgerService(repo)

    # ===== WRITES =====

    async def add_payment(
        self,
        group_id: str,
        creditor: str,
        currency: Optional[str],
        total_cents: int,
        debts: Sequence[ShareInput],
        description: str = "",
        timestamp: Optional[datetime] = None,
        is_pay_back: bool = False,
    ) -> PaymentOutcome:
        """
        Record a new payment and update balances.

        A missing currency falls back to the group's default. Raises
        PaymentValidationError if the debts do not sum to the total, the
        total is not positive, or any share is negative.
        """
        if currency is None:
            currency = await self.get_default_currency(group_id)
        currency = normalize_currency(currency)
        shares = _to_shares(debts)
        validate_payment(creditor, total_cents, shares)

        payment = PaymentRecord(
            group_id=group_id,
            description=description,
            creditor=creditor,
            currency=currency,
            total_cents=total_cents,
            debts=shares,
            is_pay_back=is_pay_back,
        )
        if timestamp is not None:
            payment.timestamp = timestamp

        async with self.ledger.session(group_id, currency) as session:
            await self.repo.write_payment(payment)
            with _partial_on_store_error("Add", payment.id):
                await self.repo.add_group_members(group_id, payment.users())
                debts_out = await self._apply(session, payment)

        logger.info(
            "Added payment %s to group %s: %s %d paid by %s",
            payment.id, group_id, currency, total_cents, creditor
        )
        return PaymentOutcome(payment=payment, debts=debts_out)

    async def edit_payment(
        self,
        payment_id: str,
        description: Optional[str] = None,
        creditor: Optional[str] = None,
        currency: Optional[str] = None,
        total_cents: Optional[int] = None,
        debts: Optional[Sequence[ShareInput]] = None,
        split_debts: Optional[ShareBuilder] = None,
    ) -> Optional[List[Debt]]:
        """
        Replace some or all fields of a payment.

        `split_debts`, when given, is called with the edited total and
        creditor to produce the new debts, and takes the place of `debts`.

        Returns None when only the description changed (no ledger work),
        otherwise the debts for the record's (new) currency.
        """
        if currency is not None:
            currency = normalize_currency(currency)
        new_shares = _to_shares(debts) if debts is not None else None

        while True:
            old = await self._load(payment_id)

            new = old.model_copy(deep=True)
            if description is not None:
                new.description = description
            if creditor is not None:
                new.creditor = creditor
            if currency is not None:
                new.currency = currency
            if total_cents is not None:
                new.total_cents = total_cents
            if split_debts is not None:
                new.debts = split_debts(new.total_cents, new.creditor)
            elif new_shares is not None:
                new.debts = [share.model_copy() for share in new_shares]

            metadata_only = (
                new.creditor == old.creditor
                and new.currency == old.currency
                and new.total_cents == old.total_cents
                and new.debts == old.debts
            )
            if not metadata_only:
                validate_payment(new.creditor, new.total_cents, new.debts)

            # A currency change moves the whole contribution; lock both sides.
            async with self.ledger.session(old.group_id, old.currency, new.currency) as session:
                if await self.repo.read_payment(payment_id) != old:
                    # Changed by someone else before the lock was taken
                    continue
                if metadata_only:
                    if new.description != old.description:
                        await self.repo.write_payment(new)
                        logger.info("Updated description of payment %s", payment_id)
                    return None
                await self.repo.write_payment(new)
                with _partial_on_store_error("Edit", payment_id):
                    await self.repo.add_group_members(new.group_id, new.users())
                    await self._apply(session, old, undo=True)
                    debts_out = await self._apply(session, new)
            break

        logger.info(
            "Edited payment %s in group %s (%s %d -> %s %d)",
            payment_id, old.group_id, old.currency, old.total_cents,
            new.currency, new.total_cents
        )
        return debts_out

    async def delete_payment(self, payment_id: str) -> PaymentOutcome:
        """Revert a payment's contribution and remove it. Returns the removed record."""
        while True:
            payment = await self._load(payment_id)

            async with self.ledger.session(payment.group_id, payment.currency) as session:
                current = await self.repo.read_payment(payment_id)
                if current is None:
                    raise PaymentNotFoundError(payment_id)
                if current != payment:
                    continue
                with _partial_on_store_error("Delete", payment_id):
                    debts_out = await self._apply(session, payment, undo=True)
                    await self.repo.delete_payment(payment_id)
            break

        logger.info("Deleted payment %s from group %s", payment_id, payment.group_id)
        return PaymentOutcome(payment=payment, debts=debts_out)

    async def pay_back(
        self,
        group_id: str,
        payer: str,
        currency: Optional[str],
        repayments: Sequence[Tuple[str, int]],
        timestamp: Optional[datetime] = None,
    ) -> PaymentOutcome:
        """
        Record `payer` handing money back to other members.

        Stored as a payment with the payer as creditor and each recipient as
        a debtor, so it flows through the same ledger path.
        """
        if not repayments:
            raise PaymentValidationError("Please provide at least one user to pay back")
        for recipient, amount in repayments:
            if recipient == payer:
                raise PaymentValidationError("You can't pay back yourself")
            if amount <= 0:
                raise PaymentValidationError(
                    f"Pay back amount for '{recipient}' must be positive: {amount}"
                )

        shares = merge_shares(list(repayments))
        total = sum(share.amount_cents for share in shares)
        return await self.add_payment(
            group_id,
            creditor=payer,
            currency=currency,
            total_cents=total,
            debts=shares,
            description=f"{payer} paid back",
            timestamp=timestamp,
            is_pay_back=True,
        )

    async def set_default_currency(self, group_id: str, currency: str) -> Group:
        """Set the currency used by requests that do not name one."""
        currency = normalize_currency(currency)
        await self.repo.set_default_currency(group_id, currency)
        logger.info("Default currency of group %s set to %s", group_id, currency)
        return await self.get_group(group_id)

    # ===== READS =====

    async def get_payment(self, payment_id: str) -> PaymentRecord:
        return await self._load(payment_id)

    async def list_payments(self, group_id: str, page: int = 0, page_size: Optional[int] = None) -> List[PaymentRecord]:
        """One page of the group's payment log, newest first."""
        page_size = page_size or settings.PAYMENTS_PAGE_SIZE
        if page < 0 or page_size <= 0:
            raise PaymentValidationError("Page must be non-negative and page size positive")
        return await self.repo.list_payments(group_id, skip=page * page_size, limit=page_size)

    async def get_group(self, group_id: str) -> Group:
        group = await self.repo.get_group(group_id)
        return group or Group(id=group_id)

    async def get_default_currency(self, group_id: str) -> str:
        return await self.repo.get_default_currency(group_id) or settings.DEFAULT_CURRENCY

    async def view_debts(self, group_id: str, currency: Optional[str] = None) -> List[Debt]:
        """Debts for one currency, or every currency the group has used."""
        debts: List[Debt] = []
        for code in await self._currencies(group_id, currency):
            debts.extend(await self.ledger.get_debts(group_id, code))
        return debts

    async def view_balances(self, group_id: str, currency: Optional[str] = None) -> List[BalanceEntry]:
        balances: List[BalanceEntry] = []
        for code in await self._currencies(group_id, currency):
            balances.extend(await self.ledger.get_balances(group_id, code))
        return balances

    async def view_spendings(self, group_id: str, currency: Optional[str] = None) -> List[UserSpending]:
        spendings: List[UserSpending] = []
        for code in await self._currencies(group_id, currency):
            rows = await self.repo.list_spendings(group_id, code)
            rows = [s for s in rows if s.spent_cents or s.paid_cents]
            spendings.extend(sorted(rows, key=lambda s: (-s.spent_cents, s.user)))
        return spendings

    # ===== PRIVATE HELPERS =====

    async def _load(self, payment_id: str) -> PaymentRecord:
        payment = await self.repo.read_payment(payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        return payment

    async def _currencies(self, group_id: str, currency: Optional[str]) -> List[str]:
        if currency:
            return [normalize_currency(currency)]
        group = await self.repo.get_group(group_id)
        return list(group.currencies) if group else []

    async def _apply(self, session: LedgerSession, payment: PaymentRecord, undo: bool = False) -> List[Debt]:
        """Apply (or revert) a record's balance and spending contribution."""
        deltas = payment.balance_deltas()
        spendings = payment.spending_deltas()
        if undo:
            deltas = _negate(deltas)
            spendings = _negate_spendings(spendings)

        debts_out = await session.apply_deltas(payment.currency, deltas)
        if spendings:
            await session.apply_spendings(payment.currency, spendings)
        return debts_out
