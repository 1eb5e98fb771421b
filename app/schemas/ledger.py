from typing import List

from pydantic import BaseModel

from app.models.ledger import BalanceEntry, Debt
from app.models.spending import UserSpending


class GroupResponse(BaseModel):
    id: str
    members: List[str]
    currencies: List[str]
    default_currency: str


class DefaultCurrencyUpdate(BaseModel):
    currency: str


class DebtsResponse(BaseModel):
    group_id: str
    debts: List[Debt]


class BalancesResponse(BaseModel):
    group_id: str
    balances: List[BalanceEntry]


class SpendingsResponse(BaseModel):
    group_id: str
    spendings: List[UserSpending]
