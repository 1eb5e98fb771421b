from typing import List, Optional

from pydantic import Field

from app.models.base import LedgerModel


class Group(LedgerModel):
    id: str = Field(alias="_id")
    members: List[str] = []
    # In order of first use
    currencies: List[str] = []
    # None means settings.DEFAULT_CURRENCY
    default_currency: Optional[str] = None
