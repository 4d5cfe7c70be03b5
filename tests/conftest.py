from datetime import datetime
from typing import Dict, List, Optional
from uuid import uuid4

import pytest

from cashlyzer.core.errors import ErrorKind, NotificationError, StoreError
from cashlyzer.models.savings import SavingsPlan
from cashlyzer.models.transaction import Transaction, TransactionKind


def make_expense(amount, category_id="food", occurred_at="2025-11-05T12:00:00", **extra) -> Transaction:
    return Transaction(
        id=extra.pop("id", uuid4().hex),
        kind=TransactionKind.EXPENSE,
        amount=amount,
        category_id=category_id,
        occurred_at=occurred_at,
        **extra,
    )


def make_income(amount, occurred_at="2025-11-01T09:00:00", source="Salary") -> Transaction:
    return Transaction(
        id=uuid4().hex,
        kind=TransactionKind.INCOME,
        amount=amount,
        source=source,
        occurred_at=occurred_at,
    )


def _within(transaction: Transaction, start: datetime, end: datetime) -> bool:
    occurred = transaction.occurred_on
    return occurred is not None and start <= occurred.replace(tzinfo=None) <= end


class FakeStore:
    """In-memory Transaction Store. Set `fail_with` to make every read raise."""

    def __init__(self, expenses=None, incomes=None, monthly_budget: Optional[float] = 1000.0):
        self.expenses: List[Transaction] = list(expenses or [])
        self.incomes: List[Transaction] = list(incomes or [])
        self.monthly_budget = monthly_budget
        self.fail_with: Optional[Exception] = None

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def fetch_expenses(self, user_id, start, end):
        self._check()
        return [t for t in self.expenses if _within(t, start, end)]

    async def fetch_incomes(self, user_id, start, end):
        self._check()
        return [t for t in self.incomes if _within(t, start, end)]

    async def put_transaction(self, user_id, transaction):
        self._check()
        target = self.expenses if transaction.kind == TransactionKind.EXPENSE else self.incomes
        target.append(transaction)

    async def delete_transaction(self, user_id, kind, transaction_id):
        target = self.expenses if kind == TransactionKind.EXPENSE else self.incomes
        for transaction in target:
            if transaction.id == transaction_id:
                target.remove(transaction)
                return True
        return False

    async def get_monthly_budget(self, user_id):
        self._check()
        return self.monthly_budget

    async def set_monthly_budget(self, user_id, monthly_budget):
        self._check()
        self.monthly_budget = monthly_budget


class FakeSink:
    """Records published events; `accept=False` rejects, `error` raises on publish."""

    def __init__(self, accept: bool = True, error: Optional[Exception] = None):
        self.accept = accept
        self.error = error
        self.published: List = []
        self.inbox: Dict[str, List[Dict]] = {}

    async def publish(self, user_id, event):
        if self.error is not None:
            raise self.error
        if self.accept:
            self.published.append((user_id, event))
        return self.accept

    async def list_notifications(self, user_id, limit=10, unread_only=True):
        items = self.inbox.get(user_id, [])
        if unread_only:
            items = [n for n in items if not n.get("read")]
        return items[:limit]

    async def mark_as_read(self, user_id, notification_id):
        for item in self.inbox.get(user_id, []):
            if item["notification_id"] == notification_id:
                item["read"] = True
                return
        raise NotificationError(f"Notification {notification_id} not found", kind=ErrorKind.NOT_FOUND)

    async def mark_all_as_read(self, user_id):
        unread = [n for n in self.inbox.get(user_id, []) if not n.get("read")]
        for item in unread:
            item["read"] = True
        return len(unread)

    async def delete_older_than(self, user_id, days=30):
        removed = len(self.inbox.pop(user_id, []))
        return removed



class FakePlanStore:
    """In-memory savings plan store keyed by plan id."""

    def __init__(self, plans=None):
        self.plans: Dict[str, SavingsPlan] = {plan.id: plan for plan in plans or []}

    async def put_plan(self, user_id, plan):
        self.plans[plan.id] = plan

    async def get_plan(self, user_id, plan_id):
        return self.plans.get(plan_id)

    async def latest_plan(self, user_id):
        if not self.plans:
            return None
        return max(self.plans.values(), key=lambda plan: plan.start_date)

    async def update_plan(self, user_id, plan_id, updates):
        if plan_id not in self.plans:
            raise StoreError(f"Savings plan {plan_id} not found", kind=ErrorKind.NOT_FOUND)
        self.plans[plan_id] = self.plans[plan_id].model_copy(update=updates)
        return self.plans[plan_id]

    async def delete_plan(self, user_id, plan_id):
        return self.plans.pop(plan_id, None) is not None

@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def store_error():
    return StoreError("get_monthly_budget failed: throttled", kind=ErrorKind.TRANSIENT)
