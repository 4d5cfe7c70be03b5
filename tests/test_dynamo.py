from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from cashlyzer.analytics import AlertEvent, AlertType, Severity
from cashlyzer.core.errors import ErrorKind, NotificationError, StoreError, error_kind_for
from cashlyzer.db.dynamo import (
    DynamoNotificationSink,
    DynamoSavingsPlanStore,
    DynamoTransactionStore,
    _convert_for_dynamo,
    _from_dynamo,
    transaction_sort_key,
)
from cashlyzer.models.savings import SavingsPlan
from cashlyzer.models.transaction import TransactionKind
from cashlyzer.utils.dates import BEGINNING_OF_TIME

from conftest import make_expense


def client_error(code, operation="Query"):
    return ClientError({"Error": {"Code": code, "Message": f"{code} happened"}}, operation)


def stored_item(transaction_id, amount, occurred_at):
    return {
        "user_id": "user-1",
        "sort_key": f"expense#{occurred_at}#{transaction_id}",
        "transaction_id": transaction_id,
        "kind": "expense",
        "amount": Decimal(str(amount)),
        "category_id": "food",
        "occurred_at": occurred_at,
    }


def make_store(**tables):
    return DynamoTransactionStore(
        users_table=tables.get("users", MagicMock()),
        transactions_table=tables.get("transactions", MagicMock()),
    )


def test_decimal_conversion():
    item = _convert_for_dynamo({"amount": 12.5, "tags": [1.25], "count": 3})
    assert item == {"amount": Decimal("12.5"), "tags": [Decimal("1.25")], "count": 3}
    assert _from_dynamo({"amount": Decimal("12.5"), "count": Decimal("3")}) == {"amount": 12.5, "count": 3}


def test_sort_key_orders_by_kind_then_time():
    expense = make_expense(10.0, occurred_at="2025-11-05T12:00:00Z", id="abc")
    assert transaction_sort_key(expense) == "expense#2025-11-05T12:00:00.000000#abc"


def test_sort_key_requires_a_date():
    with pytest.raises(StoreError) as info:
        transaction_sort_key(make_expense(10.0, occurred_at=None))
    assert info.value.kind == ErrorKind.INVALID_INPUT


@pytest.mark.asyncio
async def test_fetch_expenses_follows_pagination():
    table = MagicMock()
    table.query.side_effect = [
        {"Items": [stored_item("a", 10.5, "2025-10-01T00:00:00")], "LastEvaluatedKey": {"sort_key": "x"}},
        {"Items": [stored_item("b", 20, "2025-11-01T00:00:00")]},
    ]
    store = make_store(transactions=table)

    expenses = await store.fetch_expenses("user-1", BEGINNING_OF_TIME, datetime(2025, 11, 30))

    assert [e.id for e in expenses] == ["a", "b"]
    assert expenses[0].amount == 10.5
    assert expenses[1].kind == TransactionKind.EXPENSE
    assert table.query.call_count == 2
    assert table.query.call_args.kwargs["ExclusiveStartKey"] == {"sort_key": "x"}


@pytest.mark.asyncio
async def test_fetch_skips_malformed_rows(caplog):
    negative = stored_item("b", 0, "2025-11-02T00:00:00")
    negative["amount"] = Decimal("-5")
    kindless = stored_item("c", 10, "2025-11-03T00:00:00")
    del kindless["kind"]
    nameless = stored_item("d", 10, "2025-11-04T00:00:00")
    del nameless["transaction_id"]
    table = MagicMock()
    table.query.return_value = {"Items": [stored_item("a", 10, "2025-11-01T00:00:00"), negative, kindless, nameless]}
    store = make_store(transactions=table)

    with caplog.at_level("WARNING"):
        expenses = await store.fetch_expenses("user-1", BEGINNING_OF_TIME, datetime(2025, 11, 30))

    assert [e.id for e in expenses] == ["a"]
    assert caplog.text.count("Skipping malformed transaction") == 3


@pytest.mark.asyncio
async def test_put_transaction_writes_decimal_item():
    table = MagicMock()
    store = make_store(transactions=table)
    expense = make_expense(12.75, occurred_at="2025-11-05T12:00:00", id="abc", note="lunch")

    await store.put_transaction("user-1", expense)

    item = table.put_item.call_args.kwargs["Item"]
    assert item["user_id"] == "user-1"
    assert item["transaction_id"] == "abc"
    assert item["sort_key"] == "expense#2025-11-05T12:00:00.000000#abc"
    assert item["amount"] == Decimal("12.75")
    assert item["category_id"] == "food"


@pytest.mark.asyncio
async def test_store_translates_client_errors():
    table = MagicMock()
    table.query.side_effect = client_error("ProvisionedThroughputExceededException")
    store = make_store(transactions=table)

    with pytest.raises(StoreError) as info:
        await store.fetch_incomes("user-1", BEGINNING_OF_TIME, datetime(2025, 11, 30))
    assert info.value.kind == ErrorKind.TRANSIENT


@pytest.mark.asyncio
async def test_monthly_budget_for_unknown_user():
    users = MagicMock()
    users.get_item.return_value = {}
    store = make_store(users=users)

    with pytest.raises(StoreError) as info:
        await store.get_monthly_budget("ghost")
    assert info.value.kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_monthly_budget_round_trip_values():
    users = MagicMock()
    users.get_item.return_value = {"Item": {"user_id": "user-1", "monthly_budget": Decimal("1500")}}
    store = make_store(users=users)

    assert await store.get_monthly_budget("user-1") == 1500.0
    await store.set_monthly_budget("user-1", 1750.5)
    values = users.update_item.call_args.kwargs["ExpressionAttributeValues"]
    assert values[":b"] == Decimal("1750.5")


@pytest.mark.asyncio
async def test_delete_missing_transaction():
    table = MagicMock()
    table.query.return_value = {"Items": []}
    store = make_store(transactions=table)

    assert await store.delete_transaction("user-1", TransactionKind.EXPENSE, "nope") is False
    table.delete_item.assert_not_called()


@pytest.mark.asyncio
async def test_publish_writes_unread_notification():
    table = MagicMock()
    sink = DynamoNotificationSink(notifications_table=table)
    event = AlertEvent(type=AlertType.BUDGET_ALERT, message="You're 85% through your budget for the month!", severity=Severity.MEDIUM)

    assert await sink.publish("user-1", event) is True

    item = table.put_item.call_args.kwargs["Item"]
    assert item["type"] == "budget_alert"
    assert item["severity"] == "medium"
    assert item["read"] is False
    assert item["notification_id"].startswith(item["created_at"])


@pytest.mark.asyncio
async def test_publish_failure_raises_notification_error():
    table = MagicMock()
    table.put_item.side_effect = client_error("AccessDeniedException", "PutItem")
    sink = DynamoNotificationSink(notifications_table=table)
    event = AlertEvent(type=AlertType.SAVINGS_ALERT, message="low", severity=Severity.MEDIUM)

    with pytest.raises(NotificationError) as info:
        await sink.publish("user-1", event)
    assert info.value.kind == ErrorKind.UNAUTHORIZED


@pytest.mark.asyncio
async def test_list_unread_notifications_respects_limit():
    table = MagicMock()
    table.query.side_effect = [
        {"Items": [{"notification_id": "2", "read": False}], "LastEvaluatedKey": {"k": 1}},
        {"Items": [{"notification_id": "1", "read": False}, {"notification_id": "0", "read": False}]},
    ]
    sink = DynamoNotificationSink(notifications_table=table)

    items = await sink.list_notifications("user-1", limit=2)

    assert [i["notification_id"] for i in items] == ["2", "1"]
    assert table.query.call_args.kwargs["ScanIndexForward"] is False


@pytest.mark.asyncio
async def test_mark_missing_notification_as_read():
    table = MagicMock()
    table.update_item.side_effect = client_error("ConditionalCheckFailedException", "UpdateItem")
    sink = DynamoNotificationSink(notifications_table=table)

    with pytest.raises(NotificationError) as info:
        await sink.mark_as_read("user-1", "missing")
    assert info.value.kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_delete_older_than_uses_batch_writer():
    table = MagicMock()
    table.query.return_value = {"Items": [{"notification_id": "a"}, {"notification_id": "b"}]}
    batch = table.batch_writer.return_value.__enter__.return_value
    sink = DynamoNotificationSink(notifications_table=table)

    assert await sink.delete_older_than("user-1", days=30) == 2
    assert batch.delete_item.call_count == 2


def test_purge_expired_scans_all_users():
    table = MagicMock()
    table.scan.side_effect = [
        {"Items": [{"user_id": "u1", "notification_id": "a"}], "LastEvaluatedKey": {"k": 1}},
        {"Items": [{"user_id": "u2", "notification_id": "b"}]},
    ]
    batch = table.batch_writer.return_value.__enter__.return_value
    sink = DynamoNotificationSink(notifications_table=table)

    assert sink.purge_expired(30) == 2
    batch.delete_item.assert_any_call(Key={"user_id": "u2", "notification_id": "b"})


@pytest.mark.parametrize(
    "code, kind",
    [
        ("ResourceNotFoundException", ErrorKind.NOT_FOUND),
        ("ValidationException", ErrorKind.INVALID_INPUT),
        ("AccessDeniedException", ErrorKind.UNAUTHORIZED),
        ("ThrottlingException", ErrorKind.TRANSIENT),
        ("SomethingNew", ErrorKind.INTERNAL),
    ],
)
def test_client_error_codes_map_to_error_kind(code, kind):
    assert error_kind_for(client_error(code)) == kind


def test_connection_errors_are_transient():
    assert error_kind_for(EndpointConnectionError(endpoint_url="https://dynamodb.local")) == ErrorKind.TRANSIENT
    assert error_kind_for(ValueError("boom")) == ErrorKind.INTERNAL


def stored_plan(plan_id, start_date, **fields):
    return {
        "user_id": "user-1",
        "plan_id": plan_id,
        "monthly_contribution": Decimal("250"),
        "target_amount": Decimal("3000.5"),
        "current_amount": Decimal("0"),
        "total_contributions": Decimal("0"),
        "monthly_balance": Decimal("1200"),
        "start_date": start_date,
        "updated_at": start_date,
        **fields,
    }


@pytest.mark.asyncio
async def test_put_plan_writes_decimals():
    table = MagicMock()
    plan = SavingsPlan(id="p1", monthly_contribution=250.5, target_amount=3000, start_date=datetime(2025, 11, 1))

    await DynamoSavingsPlanStore(savings_table=table).put_plan("user-1", plan)

    item = table.put_item.call_args.kwargs["Item"]
    assert item["plan_id"] == "p1"
    assert item["monthly_contribution"] == Decimal("250.5")
    assert item["start_date"] == "2025-11-01T00:00:00"
    assert "id" not in item
    assert "target_date" not in item


@pytest.mark.asyncio
async def test_latest_plan_picks_most_recent_start():
    table = MagicMock()
    table.query.return_value = {
        "Items": [
            stored_plan("old", "2025-01-01T00:00:00"),
            stored_plan("new", "2025-06-01T00:00:00", target_date="2026-06-01"),
        ]
    }
    store = DynamoSavingsPlanStore(savings_table=table)

    plan = await store.latest_plan("user-1")

    assert plan.id == "new"
    assert plan.target_amount == 3000.5
    assert plan.target_date.year == 2026


@pytest.mark.asyncio
async def test_latest_plan_without_items():
    table = MagicMock()
    table.query.return_value = {"Items": []}

    assert await DynamoSavingsPlanStore(savings_table=table).latest_plan("user-1") is None


@pytest.mark.asyncio
async def test_update_plan_builds_set_expression():
    table = MagicMock()
    table.update_item.return_value = {"Attributes": stored_plan("p1", "2025-06-01T00:00:00", current_amount=Decimal("500"))}
    store = DynamoSavingsPlanStore(savings_table=table)

    plan = await store.update_plan("user-1", "p1", {"current_amount": 500.0, "last_contribution_date": datetime(2025, 11, 20)})

    kwargs = table.update_item.call_args.kwargs
    assert kwargs["Key"] == {"user_id": "user-1", "plan_id": "p1"}
    assert kwargs["UpdateExpression"] == "SET #f0 = :v0, #f1 = :v1, #f2 = :v2"
    assert kwargs["ExpressionAttributeNames"]["#f1"] == "last_contribution_date"
    assert kwargs["ExpressionAttributeValues"][":v0"] == Decimal("500.0")
    assert kwargs["ExpressionAttributeValues"][":v1"] == "2025-11-20T00:00:00"
    assert kwargs["ConditionExpression"] == "attribute_exists(plan_id)"
    assert plan.current_amount == 500


@pytest.mark.asyncio
async def test_update_missing_plan_is_not_found():
    table = MagicMock()
    table.update_item.side_effect = client_error("ConditionalCheckFailedException", "UpdateItem")

    with pytest.raises(StoreError) as info:
        await DynamoSavingsPlanStore(savings_table=table).update_plan("user-1", "gone", {"target_amount": 10.0})

    assert info.value.kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_delete_plan_reports_whether_it_existed():
    table = MagicMock()
    table.delete_item.side_effect = [{"Attributes": stored_plan("p1", "2025-06-01T00:00:00")}, {}]
    store = DynamoSavingsPlanStore(savings_table=table)

    assert await store.delete_plan("user-1", "p1") is True
    assert await store.delete_plan("user-1", "p1") is False
    assert table.delete_item.call_args.kwargs["ReturnValues"] == "ALL_OLD"


@pytest.mark.asyncio
async def test_plan_store_translates_throttling():
    table = MagicMock()
    table.get_item.side_effect = client_error("ThrottlingException", "GetItem")

    with pytest.raises(StoreError) as info:
        await DynamoSavingsPlanStore(savings_table=table).get_plan("user-1", "p1")

    assert info.value.kind == ErrorKind.TRANSIENT
