from app.models.base import LedgerModel


class UserSpending(LedgerModel):
    """How much a user consumed (spent) and fronted (paid) in one currency."""
    group_id: str
    user: str
    currency: str
    spent_cents: int = 0
    paid_cents: int = 0
