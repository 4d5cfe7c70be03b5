from datetime import date, datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class SavingsPlanCreate(BaseModel):
    monthly_contribution: float = Field(gt=0)
    target_amount: float = Field(gt=0)
    target_date: Optional[date] = None


class SavingsPlanUpdate(BaseModel):
    """Fields left out of the request body keep their stored value."""

    monthly_contribution: Optional[float] = Field(default=None, gt=0)
    target_amount: Optional[float] = Field(default=None, gt=0)
    target_date: Optional[date] = None


class SavingsPlan(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    monthly_contribution: float = Field(gt=0)
    target_amount: float = Field(gt=0)
    target_date: Optional[date] = None
    current_amount: float = 0.0
    total_contributions: int = 0
    monthly_balance: float = 0.0
    start_date: datetime = Field(default_factory=datetime.utcnow)
    last_contribution_date: Optional[datetime] = None

    @property
    def progress_percent(self) -> float:
        return round(min(100.0, self.current_amount / self.target_amount * 100), 2)

    def to_dict(self) -> Dict[str, Any]:
        return {**self.model_dump(mode="json"), "progress_percent": self.progress_percent}
