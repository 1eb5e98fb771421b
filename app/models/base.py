from datetime import datetime, timezone

from bson import ObjectId
from pydantic import BaseModel, ConfigDict


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    """String form of a fresh ObjectId, used for every entity id."""
    return str(ObjectId())


class LedgerModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True
    )
