"""
Collaborator contracts consumed by the analytics layer.

Implementations raise StoreError / NotificationError (see cashlyzer.core.errors)
for I/O failures; they never retry on behalf of the caller.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from cashlyzer.analytics.records import AlertEvent
from cashlyzer.models.savings import SavingsPlan
from cashlyzer.models.transaction import Transaction


class TransactionStore(Protocol):
    async def fetch_expenses(self, user_id: str, start: datetime, end: datetime) -> List[Transaction]:
        ...

    async def fetch_incomes(self, user_id: str, start: datetime, end: datetime) -> List[Transaction]:
        ...

    async def put_transaction(self, user_id: str, transaction: Transaction) -> None:
        ...

    async def get_monthly_budget(self, user_id: str) -> Optional[float]:
        ...

    async def set_monthly_budget(self, user_id: str, monthly_budget: float) -> None:
        ...


class NotificationSink(Protocol):
    async def publish(self, user_id: str, event: AlertEvent) -> bool:
        ...


class SavingsPlanStore(Protocol):
    async def put_plan(self, user_id: str, plan: SavingsPlan) -> None:
        ...

    async def get_plan(self, user_id: str, plan_id: str) -> Optional[SavingsPlan]:
        ...

    async def latest_plan(self, user_id: str) -> Optional[SavingsPlan]:
        ...

    async def update_plan(self, user_id: str, plan_id: str, updates: Dict[str, Any]) -> SavingsPlan:
        ...

    async def delete_plan(self, user_id: str, plan_id: str) -> bool:
        ...
