from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional
from uuid import uuid4
from datetime import datetime, timezone


TransactionKind = Literal["expense", "income"]


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TransactionCreate(BaseModel):
    kind: TransactionKind = "expense"
    amount: float = Field(gt=0)
    date: str = Field(default_factory=_utcnow_iso)
    area_id: Optional[str] = None
    category_id: Optional[str] = None
    title: Optional[str] = ""
    description: Optional[str] = ""


class TransactionUpdate(BaseModel):
    amount: Optional[float] = Field(default=None, gt=0)
    date: Optional[str] = None
    area_id: Optional[str] = None
    category_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None

    @field_validator("amount", "date")
    @classmethod
    def _not_null(cls, value):
        # Omit the field to keep it; null would blank a value detection relies on
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class TransactionInDB(BaseModel):
    user_id: str
    transaction_id: str = Field(default_factory=lambda: str(uuid4()))
    kind: TransactionKind = "expense"
    amount: float
    date: str = Field(default_factory=_utcnow_iso)
    area_id: Optional[str] = None
    category_id: Optional[str] = None
    title: Optional[str] = ""
    description: Optional[str] = ""


class TransactionPublic(BaseModel):
    transaction_id: str
    kind: TransactionKind
    amount: float
    date: str
    area_id: Optional[str] = None
    category_id: Optional[str] = None
    title: Optional[str] = ""
    description: Optional[str] = ""
