from decimal import Decimal

from botocore.exceptions import ClientError

from app.core.config import Settings
from app.db.dynamo import DynamoStore, _convert_for_dynamo, _from_dynamo


class FakeTable:
    def __init__(self, name, pages=None, update_error=None):
        self.name = name
        self.pages = list(pages or [])
        self.calls = []
        self.update_error = update_error

    def _next_page(self, **kwargs):
        self.calls.append(kwargs)
        return self.pages.pop(0)

    query = _next_page
    scan = _next_page

    def update_item(self, **kwargs):
        self.calls.append(kwargs)
        if self.update_error:
            raise self.update_error
        return {"Attributes": {"user_id": "u1", "alert_id": "a1", "read": True}}


class FakeResource:
    def __init__(self, tables):
        self.tables = tables

    def Table(self, name):
        return self.tables.setdefault(name, FakeTable(name))


def _store(**tables):
    settings = Settings()
    resource = FakeResource({
        settings.DYNAMO_TABLE_USERS: tables.get("users", FakeTable("users")),
        settings.DYNAMO_TABLE_TRANSACTIONS: tables.get("transactions", FakeTable("transactions")),
        settings.DYNAMO_TABLE_ALERTS: tables.get("alerts", FakeTable("alerts")),
        settings.DYNAMO_TABLE_GOALS: tables.get("goals", FakeTable("goals")),
    })
    return DynamoStore(settings, resource=resource)


def test_decimal_round_trip():
    stored = _convert_for_dynamo({"amount": 12.5, "items": [1.25], "count": 3})

    assert stored == {"amount": Decimal("12.5"), "items": [Decimal("1.25")], "count": 3}
    assert _from_dynamo({"amount": Decimal("12.5"), "whole": Decimal("40")}) == {"amount": 12.5, "whole": 40}


def test_transactions_query_follows_pagination():
    table = FakeTable("transactions", pages=[
        {"Items": [{"transaction_id": "t1", "amount": Decimal("10")}], "LastEvaluatedKey": {"k": 1}},
        {"Items": [{"transaction_id": "t2", "amount": Decimal("2.5")}]},
    ])
    store = _store(transactions=table)

    items = store.list_transactions("u1", kind="expense")

    assert [(i["transaction_id"], i["amount"]) for i in items] == [("t1", 10), ("t2", 2.5)]
    assert table.calls[1]["ExclusiveStartKey"] == {"k": 1}
    assert "FilterExpression" in table.calls[0]


def test_enabled_users_scan():
    users = FakeTable("users", pages=[{"Items": [{"user_id": "a"}, {"user_id": "b"}]}])

    assert _store(users=users).list_alert_enabled_user_ids() == ["a", "b"]


def test_mark_read_only_updates_existing_rows():
    alerts = FakeTable("alerts")
    store = _store(alerts=alerts)

    assert store.mark_alert_read("u1", "a1")["read"] is True
    call = alerts.calls[0]
    assert call["ConditionExpression"] == "attribute_exists(#k0) AND attribute_exists(#k1)"
    assert set(call["ExpressionAttributeNames"].values()) == {"read", "user_id", "alert_id"}

    alerts.update_error = ClientError(
        {"Error": {"Code": "ConditionalCheckFailedException", "Message": "The conditional request failed"}},
        "UpdateItem",
    )
    assert store.mark_alert_read("u1", "missing") is None
