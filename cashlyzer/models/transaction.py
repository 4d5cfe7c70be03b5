from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cashlyzer.constants.categories import CATEGORY_REGISTRY
from cashlyzer.utils.dates import parse_timestamp


class TransactionKind(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


def _isoformat(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class Transaction(BaseModel):
    """
    A stored expense or income record. Read-only once loaded from the store.
    occurred_at keeps the raw stored value; use `occurred_on` for the parsed timestamp.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    kind: TransactionKind
    amount: float = Field(ge=0)
    category_id: Optional[str] = None  # expenses
    subcategory: Optional[str] = None
    source: Optional[str] = None  # incomes
    occurred_at: Optional[str] = None
    note: Optional[str] = None

    @field_validator("occurred_at", mode="before")
    @classmethod
    def normalize_occurred_at(cls, value: Any) -> Any:
        return _isoformat(value)

    @property
    def occurred_on(self) -> Optional[datetime]:
        return parse_timestamp(self.occurred_at)


class ExpenseCreate(BaseModel):
    category_id: str
    subcategory: Optional[str] = None
    amount: float = Field(gt=0)
    note: Optional[str] = ""
    occurred_at: Optional[str] = Field(default_factory=lambda: datetime.utcnow().isoformat())

    @field_validator("occurred_at", mode="before")
    @classmethod
    def normalize_occurred_at(cls, value: Any) -> Any:
        return _isoformat(value)

    @field_validator("category_id")
    @classmethod
    def known_category(cls, value: str) -> str:
        if not CATEGORY_REGISTRY.is_valid(value):
            raise ValueError(f"Unknown category: {value}")
        return value

    @field_validator("occurred_at")
    @classmethod
    def parseable_date(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and parse_timestamp(value) is None:
            raise ValueError("occurred_at must be an ISO-8601 date or timestamp")
        return value

    @model_validator(mode="after")
    def known_subcategory(self) -> "ExpenseCreate":
        if self.subcategory and not CATEGORY_REGISTRY.is_valid_subcategory(self.category_id, self.subcategory):
            raise ValueError(f"Invalid subcategory for {self.category_id}: {self.subcategory}")
        return self

    def to_transaction(self) -> Transaction:
        return Transaction(
            id=uuid4().hex,
            kind=TransactionKind.EXPENSE,
            amount=self.amount,
            category_id=self.category_id,
            subcategory=self.subcategory,
            occurred_at=self.occurred_at,
            note=self.note,
        )


class IncomeCreate(BaseModel):
    source: str
    amount: float = Field(gt=0)
    note: Optional[str] = ""
    occurred_at: Optional[str] = Field(default_factory=lambda: datetime.utcnow().isoformat())

    @field_validator("occurred_at", mode="before")
    @classmethod
    def normalize_occurred_at(cls, value: Any) -> Any:
        return _isoformat(value)

    @field_validator("occurred_at")
    @classmethod
    def parseable_date(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and parse_timestamp(value) is None:
            raise ValueError("occurred_at must be an ISO-8601 date or timestamp")
        return value

    def to_transaction(self) -> Transaction:
        return Transaction(
            id=uuid4().hex,
            kind=TransactionKind.INCOME,
            amount=self.amount,
            source=self.source,
            occurred_at=self.occurred_at,
            note=self.note,
        )


class MonthlyBudgetUpdate(BaseModel):
    monthly_budget: float = Field(gt=0)
