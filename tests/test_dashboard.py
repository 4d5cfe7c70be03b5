from datetime import datetime

import pytest

from cashlyzer.analytics.dashboard import category_breakdown, dashboard_summary, remaining_days
from cashlyzer.services.analytics_service import AnalyticsService

from conftest import FakeSink, FakeStore, make_expense, make_income

NOW = datetime(2025, 11, 20, 12, 0, 0)

november_expenses = [
    make_expense(300.0, "food", "2025-11-03T12:00:00"),
    make_expense(500.0, "housing", "2025-11-01T08:00:00"),
    make_expense(150.0, "transport", "2025-11-10T08:00:00"),
    make_expense(50.0, "transport", "2025-11-12T08:00:00"),
]

november_incomes = [make_income(3000.0, "2025-11-01T09:00:00")]


def test_remaining_days_counts_partial_day():
    assert remaining_days(NOW) == 11
    assert remaining_days(datetime(2025, 11, 30, 23, 59, 59)) == 1
    assert remaining_days(datetime(2025, 2, 1)) == 28


def test_category_breakdown_is_sorted_by_amount():
    breakdown = category_breakdown(november_expenses)

    assert [entry["category_id"] for entry in breakdown] == ["housing", "food", "transport"]
    assert breakdown[0]["percentage"] == 50.0
    assert breakdown[2]["amount"] == 200.0
    assert breakdown[2]["count"] == 2
    assert breakdown[1]["name"] == "Food & Dining"


def test_category_breakdown_without_expenses():
    assert category_breakdown([]) == []


def test_dashboard_within_budget():
    summary = dashboard_summary(NOW, 2000.0, november_expenses, november_incomes, running_balance=1500.0)

    assert summary["month"] == "2025-11"
    assert summary["monthly_expenses"] == 1000.0
    assert summary["monthly_balance"] == 2000.0
    assert summary["running_balance"] == 1500.0
    assert summary["budget_utilization"] == 50.0

    status = summary["balance_status"]
    assert status["is_negative"] is False
    assert status["is_over_budget"] is False
    assert status["available_to_spend"] == 1000.0
    assert status["remaining_days"] == 11
    assert status["daily_budget"] == 90.91

    assert [m["type"] for m in summary["messages"]] == ["info", "info"]
    assert summary["messages"][0]["message"] == "You have $1000.00 remaining in your budget."
    assert "$90.91 for the remaining 11 days" in summary["messages"][1]["message"]
    assert len(summary["top_categories"]) == 3


def test_dashboard_over_budget_and_negative():
    summary = dashboard_summary(NOW, 800.0, november_expenses, [make_income(500.0)], running_balance=-500.0)

    status = summary["balance_status"]
    assert status["is_negative"] is True
    assert status["is_over_budget"] is True
    assert status["available_to_spend"] == 0.0
    assert status["daily_budget"] == 0.0
    assert summary["monthly_balance"] == 0.0
    assert summary["budget_utilization"] == 100.0
    assert [m["type"] for m in summary["messages"]] == ["warning", "warning"]


def test_dashboard_without_budget():
    summary = dashboard_summary(NOW, None, november_expenses, november_incomes, running_balance=2000.0, top_limit=1)

    assert summary["monthly_budget"] == 0.0
    assert summary["budget_utilization"] == 0.0
    assert summary["balance_status"]["is_over_budget"] is False
    assert summary["messages"] == []
    assert [entry["category_id"] for entry in summary["top_categories"]] == ["housing"]


@pytest.mark.asyncio
async def test_service_dashboard_uses_all_history_for_running_balance():
    store = FakeStore(
        expenses=november_expenses + [make_expense(1500.0, "housing", "2025-10-01T08:00:00")],
        incomes=november_incomes + [make_income(1000.0, "2025-10-01T09:00:00")],
        monthly_budget=2000.0,
    )
    service = AnalyticsService(store, FakeSink())

    summary = await service.get_dashboard_summary("user-1", now=NOW)

    assert summary["monthly_income"] == 3000.0
    assert summary["monthly_expenses"] == 1000.0
    assert summary["running_balance"] == 1500.0
    assert summary["balance_status"]["available_to_spend"] == 1000.0
