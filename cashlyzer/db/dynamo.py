"""
DynamoDB adapters for the Transaction Store, the Notification Sink and savings plans.

Tables:
    users          PK user_id                      (monthly_budget)
    transactions   PK user_id, SK sort_key         "<kind>#<occurred_at>#<id>"
    notifications  PK user_id, SK notification_id  "<created_at>#<id>"
    savings        PK user_id, SK plan_id

boto3 is blocking, so every public coroutine runs its table calls in a worker thread.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, TypeVar
from uuid import uuid4

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import TypeAdapter, ValidationError

from cashlyzer.analytics.records import AlertEvent
from cashlyzer.core.config import settings
from cashlyzer.core.errors import ErrorKind, NotificationError, StoreError, describe, error_kind_for
from cashlyzer.models.savings import SavingsPlan
from cashlyzer.models.transaction import Transaction, TransactionKind
from cashlyzer.utils.dates import to_naive_utc

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SORT_KEY_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"
_UPDATES = TypeAdapter(Dict[str, Any])


def get_dynamodb():
    return boto3.resource("dynamodb", region_name=settings.DYNAMO_REGION)


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj


def _sort_time(moment: datetime) -> str:
    return to_naive_utc(moment).strftime(_SORT_KEY_TIME_FORMAT)


def transaction_sort_key(transaction: Transaction) -> str:
    occurred = transaction.occurred_on
    if occurred is None:
        raise StoreError(f"Transaction {transaction.id} has no valid date", kind=ErrorKind.INVALID_INPUT)
    return f"{transaction.kind.value}#{_sort_time(occurred)}#{transaction.id}"


def _query_all(table, **kwargs) -> List[Dict[str, Any]]:
    """Run a query and follow LastEvaluatedKey until the result set is exhausted."""
    items: List[Dict[str, Any]] = []
    while True:
        response = table.query(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


class DynamoTransactionStore:
    """Transaction Store backed by the users and transactions tables."""

    def __init__(self, users_table=None, transactions_table=None) -> None:
        if users_table is None or transactions_table is None:
            dynamodb = get_dynamodb()
            users_table = users_table or dynamodb.Table(settings.DYNAMO_USERS_TABLE)
            transactions_table = transactions_table or dynamodb.Table(settings.DYNAMO_TRANSACTIONS_TABLE)
        self.users_table = users_table
        self.transactions_table = transactions_table

    async def _call(self, operation: str, fn: Callable[..., T], *args) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except (ClientError, BotoCoreError) as e:
            kind = error_kind_for(e)
            logger.error(f"{operation} failed ({kind.value}): {describe(e)}")
            raise StoreError(f"{operation} failed: {describe(e)}", kind=kind) from e

    def _fetch_sync(self, user_id: str, kind: TransactionKind, start: datetime, end: datetime) -> List[Transaction]:
        lower = f"{kind.value}#{_sort_time(start)}"
        upper = f"{kind.value}#{_sort_time(end)}#~"
        items = _query_all(
            self.transactions_table,
            KeyConditionExpression=Key("user_id").eq(user_id) & Key("sort_key").between(lower, upper),
            ScanIndexForward=True,
        )
        transactions = []
        for item in items:
            try:
                transactions.append(self._to_transaction(_from_dynamo(item)))
            except (ValidationError, KeyError) as e:
                logger.warning(f"Skipping malformed transaction {item.get('sort_key')!r}: {str(e)}")
        return transactions

    @staticmethod
    def _to_transaction(item: Dict[str, Any]) -> Transaction:
        return Transaction(
            id=item["transaction_id"],
            kind=item["kind"],
            amount=item.get("amount", 0),
            category_id=item.get("category_id"),
            subcategory=item.get("subcategory"),
            source=item.get("source"),
            occurred_at=item.get("occurred_at"),
            note=item.get("note"),
        )

    async def fetch_expenses(self, user_id: str, start: datetime, end: datetime) -> List[Transaction]:
        return await self._call("fetch_expenses", self._fetch_sync, user_id, TransactionKind.EXPENSE, start, end)

    async def fetch_incomes(self, user_id: str, start: datetime, end: datetime) -> List[Transaction]:
        return await self._call("fetch_incomes", self._fetch_sync, user_id, TransactionKind.INCOME, start, end)

    def _put_sync(self, user_id: str, transaction: Transaction) -> None:
        item = {
            "user_id": user_id,
            "sort_key": transaction_sort_key(transaction),
            "transaction_id": transaction.id,
            "created_at": datetime.utcnow().isoformat(),
            **transaction.model_dump(exclude={"id"}, mode="json", exclude_none=True),
        }
        self.transactions_table.put_item(Item=_convert_for_dynamo(item))

    async def put_transaction(self, user_id: str, transaction: Transaction) -> None:
        await self._call("put_transaction", self._put_sync, user_id, transaction)

    def _delete_sync(self, user_id: str, kind: TransactionKind, transaction_id: str) -> bool:
        items = _query_all(
            self.transactions_table,
            KeyConditionExpression=Key("user_id").eq(user_id) & Key("sort_key").begins_with(f"{kind.value}#"),
            FilterExpression=Attr("transaction_id").eq(transaction_id),
        )
        if not items:
            return False
        self.transactions_table.delete_item(Key={"user_id": user_id, "sort_key": items[0]["sort_key"]})
        return True

    async def delete_transaction(self, user_id: str, kind: TransactionKind, transaction_id: str) -> bool:
        return await self._call("delete_transaction", self._delete_sync, user_id, kind, transaction_id)

    def _get_budget_sync(self, user_id: str) -> Optional[float]:
        response = self.users_table.get_item(Key={"user_id": user_id})
        item = response.get("Item")
        if not item:
            raise StoreError(f"User {user_id} not found", kind=ErrorKind.NOT_FOUND)
        budget = _from_dynamo(item).get("monthly_budget")
        return float(budget) if budget is not None else None

    async def get_monthly_budget(self, user_id: str) -> Optional[float]:
        return await self._call("get_monthly_budget", self._get_budget_sync, user_id)

    def _set_budget_sync(self, user_id: str, monthly_budget: float) -> None:
        self.users_table.update_item(
            Key={"user_id": user_id},
            UpdateExpression="SET monthly_budget = :b, updated_at = :u",
            ExpressionAttributeValues=_convert_for_dynamo(
                {":b": float(monthly_budget), ":u": datetime.utcnow().isoformat()}
            ),
        )

    async def set_monthly_budget(self, user_id: str, monthly_budget: float) -> None:
        await self._call("set_monthly_budget", self._set_budget_sync, user_id, monthly_budget)


class DynamoNotificationSink:
    """
    Notification Sink backed by the notifications table, plus the read side of
    the user's notification inbox.
    """

    def __init__(self, notifications_table=None) -> None:
        if notifications_table is None:
            notifications_table = get_dynamodb().Table(settings.DYNAMO_NOTIFICATIONS_TABLE)
        self.notifications_table = notifications_table

    async def _call(self, operation: str, fn: Callable[..., T], *args) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except (ClientError, BotoCoreError) as e:
            kind = error_kind_for(e)
            logger.error(f"{operation} failed ({kind.value}): {describe(e)}")
            raise NotificationError(f"{operation} failed: {describe(e)}", kind=kind) from e

    def _publish_sync(self, user_id: str, event: AlertEvent) -> bool:
        created_at = datetime.utcnow().strftime(_SORT_KEY_TIME_FORMAT)
        item = {
            "user_id": user_id,
            "notification_id": f"{created_at}#{uuid4().hex}",
            **event.to_dict(),
            "read": False,
            "created_at": created_at,
        }
        self.notifications_table.put_item(Item=_convert_for_dynamo(item))
        return True

    async def publish(self, user_id: str, event: AlertEvent) -> bool:
        return await self._call("publish", self._publish_sync, user_id, event)

    def _list_sync(self, user_id: str, limit: int, unread_only: bool) -> List[Dict[str, Any]]:
        kwargs: Dict[str, Any] = {
            "KeyConditionExpression": Key("user_id").eq(user_id),
            "ScanIndexForward": False,
        }
        if unread_only:
            kwargs["FilterExpression"] = Attr("read").eq(False)

        # Limit applies before the filter, so keep paging until enough items match
        items: List[Dict[str, Any]] = []
        while len(items) < limit:
            response = self.notifications_table.query(Limit=limit, **kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
        return [_from_dynamo(item) for item in items[:limit]]

    async def list_notifications(self, user_id: str, limit: int = 10, unread_only: bool = True) -> List[Dict[str, Any]]:
        return await self._call("list_notifications", self._list_sync, user_id, limit, unread_only)

    def _mark_read_sync(self, user_id: str, notification_id: str) -> None:
        try:
            self.notifications_table.update_item(
                Key={"user_id": user_id, "notification_id": notification_id},
                UpdateExpression="SET #r = :t, read_at = :now",
                ConditionExpression="attribute_exists(notification_id)",
                ExpressionAttributeNames={"#r": "read"},
                ExpressionAttributeValues={":t": True, ":now": datetime.utcnow().isoformat()},
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise NotificationError(f"Notification {notification_id} not found", kind=ErrorKind.NOT_FOUND) from e
            raise

    async def mark_as_read(self, user_id: str, notification_id: str) -> None:
        await self._call("mark_as_read", self._mark_read_sync, user_id, notification_id)

    def _mark_all_read_sync(self, user_id: str) -> int:
        unread = _query_all(
            self.notifications_table,
            KeyConditionExpression=Key("user_id").eq(user_id),
            FilterExpression=Attr("read").eq(False),
        )
        now = datetime.utcnow().isoformat()
        for item in unread:
            self.notifications_table.update_item(
                Key={"user_id": user_id, "notification_id": item["notification_id"]},
                UpdateExpression="SET #r = :t, read_at = :now",
                ExpressionAttributeNames={"#r": "read"},
                ExpressionAttributeValues={":t": True, ":now": now},
            )
        return len(unread)

    async def mark_all_as_read(self, user_id: str) -> int:
        return await self._call("mark_all_as_read", self._mark_all_read_sync, user_id)

    def _delete_older_sync(self, user_id: str, cutoff: datetime) -> int:
        stale = _query_all(
            self.notifications_table,
            KeyConditionExpression=Key("user_id").eq(user_id) & Key("notification_id").lt(_sort_time(cutoff)),
        )
        with self.notifications_table.batch_writer() as batch:
            for item in stale:
                batch.delete_item(Key={"user_id": user_id, "notification_id": item["notification_id"]})
        return len(stale)

    async def delete_older_than(self, user_id: str, days: int = 30) -> int:
        cutoff = datetime.utcnow() - timedelta(days=days)
        return await self._call("delete_older_than", self._delete_older_sync, user_id, cutoff)

    def purge_expired(self, days: int) -> int:
        """
        Delete notifications older than `days` for every user. Blocking; meant
        for the background scheduler.
        """
        cutoff = _sort_time(datetime.utcnow() - timedelta(days=days))
        kwargs: Dict[str, Any] = {
            "FilterExpression": Attr("created_at").lt(cutoff),
            "ProjectionExpression": "user_id, notification_id",
        }
        deleted = 0
        with self.notifications_table.batch_writer() as batch:
            while True:
                response = self.notifications_table.scan(**kwargs)
                for item in response.get("Items", []):
                    batch.delete_item(Key={"user_id": item["user_id"], "notification_id": item["notification_id"]})
                    deleted += 1
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        return deleted



class DynamoSavingsPlanStore:
    """Savings plans, one item per plan under the owning user."""

    def __init__(self, savings_table=None) -> None:
        if savings_table is None:
            savings_table = get_dynamodb().Table(settings.DYNAMO_SAVINGS_TABLE)
        self.savings_table = savings_table

    async def _call(self, operation: str, fn: Callable[..., T], *args) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except (ClientError, BotoCoreError) as e:
            kind = error_kind_for(e)
            logger.error(f"{operation} failed ({kind.value}): {describe(e)}")
            raise StoreError(f"{operation} failed: {describe(e)}", kind=kind) from e

    @staticmethod
    def _to_plan(item: Dict[str, Any]) -> SavingsPlan:
        data = _from_dynamo(item)
        data["id"] = data.pop("plan_id")
        return SavingsPlan.model_validate(data)

    def _put_sync(self, user_id: str, plan: SavingsPlan) -> None:
        item = {
            "user_id": user_id,
            "plan_id": plan.id,
            "updated_at": datetime.utcnow().isoformat(),
            **plan.model_dump(exclude={"id"}, mode="json", exclude_none=True),
        }
        self.savings_table.put_item(Item=_convert_for_dynamo(item))

    async def put_plan(self, user_id: str, plan: SavingsPlan) -> None:
        await self._call("put_plan", self._put_sync, user_id, plan)

    def _get_sync(self, user_id: str, plan_id: str) -> Optional[SavingsPlan]:
        item = self.savings_table.get_item(Key={"user_id": user_id, "plan_id": plan_id}).get("Item")
        return self._to_plan(item) if item else None

    async def get_plan(self, user_id: str, plan_id: str) -> Optional[SavingsPlan]:
        return await self._call("get_plan", self._get_sync, user_id, plan_id)

    def _latest_sync(self, user_id: str) -> Optional[SavingsPlan]:
        items = _query_all(self.savings_table, KeyConditionExpression=Key("user_id").eq(user_id))
        if not items:
            return None
        return max((self._to_plan(item) for item in items), key=lambda plan: plan.start_date)

    async def latest_plan(self, user_id: str) -> Optional[SavingsPlan]:
        """The most recently started plan, or None when the user has none."""
        return await self._call("latest_plan", self._latest_sync, user_id)

    def _update_sync(self, user_id: str, plan_id: str, updates: Dict[str, Any]) -> SavingsPlan:
        values = {**_UPDATES.dump_python(updates, mode="json"), "updated_at": datetime.utcnow().isoformat()}
        names = {f"#f{i}": field for i, field in enumerate(values)}
        try:
            response = self.savings_table.update_item(
                Key={"user_id": user_id, "plan_id": plan_id},
                UpdateExpression="SET " + ", ".join(f"{name} = :v{i}" for i, name in enumerate(names)),
                ConditionExpression="attribute_exists(plan_id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=_convert_for_dynamo({f":v{i}": value for i, value in enumerate(values.values())}),
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise StoreError(f"Savings plan {plan_id} not found", kind=ErrorKind.NOT_FOUND) from e
            raise
        return self._to_plan(response["Attributes"])

    async def update_plan(self, user_id: str, plan_id: str, updates: Dict[str, Any]) -> SavingsPlan:
        return await self._call("update_plan", self._update_sync, user_id, plan_id, updates)

    def _delete_sync(self, user_id: str, plan_id: str) -> bool:
        response = self.savings_table.delete_item(
            Key={"user_id": user_id, "plan_id": plan_id},
            ReturnValues="ALL_OLD",
        )
        return bool(response.get("Attributes"))

    async def delete_plan(self, user_id: str, plan_id: str) -> bool:
        return await self._call("delete_plan", self._delete_sync, user_id, plan_id)
