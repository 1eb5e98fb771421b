"""
Ledger error taxonomy.

- PaymentValidationError: caused by the caller's input, surfaced unchanged.
- ConsistencyViolation: a broken internal contract (e.g. deltas that do not
  net to zero). Never recovered from.
- StoreError: the persistence layer failed. Not retried here.
"""


class LedgerError(Exception):
    """Base class for every error raised by the ledger engine."""
    pass


class PaymentValidationError(LedgerError):
    """Payment input rejected (bad sums, negative amounts, empty debts)."""
    pass


class PaymentNotFoundError(PaymentValidationError):
    def __init__(self, payment_id: str):
        super().__init__(f"Payment '{payment_id}' not found")
        self.payment_id = payment_id


class ConsistencyViolation(LedgerError):
    pass


class StoreError(LedgerError):
    pass
