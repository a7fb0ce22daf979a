import copy
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from app.core.config import Settings
from app.core.context import AppContext
from app.core.security import create_access_token
from app.models.user import AlertSettings
from app.utils.push_service import PushDeliveryError

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeStore:
    """In-memory stand-in for DynamoStore with the same method surface."""

    def __init__(self):
        self.users = {}
        self.transactions = {}
        self.alerts = {}
        self.goals = {}

    # Users
    def get_user_by_email(self, email):
        for user in self.users.values():
            if user.get("email") == email:
                return copy.deepcopy(user)
        return None

    def get_user(self, user_id):
        user = self.users.get(user_id)
        return copy.deepcopy(user) if user else None

    def put_user(self, item):
        self.users[item["user_id"]] = copy.deepcopy(item)
        return True

    def update_user(self, user_id, updates):
        if user_id not in self.users or not updates:
            return None
        self.users[user_id].update(copy.deepcopy(updates))
        return copy.deepcopy(self.users[user_id])

    def list_alert_enabled_user_ids(self):
        return [
            user_id
            for user_id, user in self.users.items()
            if (user.get("alerts_settings") or {}).get("enabled") is not False
        ]

    # Transactions
    def put_transaction(self, item):
        self.transactions.setdefault(item["user_id"], {})[item["transaction_id"]] = copy.deepcopy(item)
        return True

    def get_transaction(self, user_id, transaction_id):
        item = self.transactions.get(user_id, {}).get(transaction_id)
        return copy.deepcopy(item) if item else None

    def list_transactions(self, user_id, kind=None):
        items = self.transactions.get(user_id, {}).values()
        return [copy.deepcopy(i) for i in items if kind is None or i.get("kind") == kind]

    def update_transaction(self, user_id, transaction_id, updates):
        item = self.transactions.get(user_id, {}).get(transaction_id)
        if not item or not updates:
            return None
        item.update(updates)
        return copy.deepcopy(item)

    def delete_transaction(self, user_id, transaction_id):
        return self.transactions.get(user_id, {}).pop(transaction_id, None) is not None

    # Alerts
    def put_alert(self, item):
        self.alerts.setdefault(item["user_id"], {})[item["alert_id"]] = copy.deepcopy(item)
        return True

    def list_alerts(self, user_id):
        return [copy.deepcopy(a) for a in self.alerts.get(user_id, {}).values()]

    def mark_alert_read(self, user_id, alert_id):
        item = self.alerts.get(user_id, {}).get(alert_id)
        if not item:
            return None
        item["read"] = True
        return copy.deepcopy(item)

    def delete_alert(self, user_id, alert_id):
        return self.alerts.get(user_id, {}).pop(alert_id, None) is not None

    # Goals
    def put_goal(self, item):
        self.goals.setdefault(item["user_id"], {})[item["goal_id"]] = copy.deepcopy(item)
        return True

    def list_goals(self, user_id):
        return [copy.deepcopy(g) for g in self.goals.get(user_id, {}).values()]

    def update_goal(self, user_id, goal_id, updates):
        item = self.goals.get(user_id, {}).get(goal_id)
        if not item or not updates:
            return None
        item.update(updates)
        return copy.deepcopy(item)

    def delete_goal(self, user_id, goal_id):
        return self.goals.get(user_id, {}).pop(goal_id, None) is not None

    def ping(self):
        return {"users": "accessible", "transactions": "accessible", "alerts": "accessible", "goals": "accessible"}

    # Helpers
    def alert_count(self, user_id):
        return len(self.alerts.get(user_id, {}))


class FakePush:
    def __init__(self):
        self.sent = []
        self.fail_with = None

    def send(self, token, title, body, data=None):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"to": token, "title": title, "body": body, "data": data})
        return {"status": "ok", "id": str(uuid4())}

    def close(self):
        pass


def add_user(store, user_id="user-1", push_token=None, types=None, **settings_overrides):
    alert_settings = AlertSettings(**settings_overrides).model_dump()
    alert_settings["types"].update(types or {})
    store.put_user({
        "user_id": user_id,
        "email": f"{user_id}@example.com",
        "password_hash": "x",
        "created_at": NOW.isoformat(),
        "push_token": push_token,
        "alerts_settings": alert_settings,
    })
    return user_id


def add_expense(store, user_id, amount, days_ago, category="food", transaction_id=None, title=None, kind="expense"):
    transaction_id = transaction_id or str(uuid4())
    store.put_transaction({
        "user_id": user_id,
        "transaction_id": transaction_id,
        "kind": kind,
        "amount": amount,
        "date": (NOW - timedelta(days=days_ago)).isoformat(),
        "category_id": category,
        "title": title or f"expense {transaction_id[:6]}",
    })
    return transaction_id


def add_goal(store, user_id, start_in_days, status="pending", goal_id=None, title="Save more"):
    goal_id = goal_id or str(uuid4())
    start = (NOW + timedelta(days=start_in_days)).date()
    store.put_goal({
        "user_id": user_id,
        "goal_id": goal_id,
        "title": title,
        "description": "",
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=7)).isoformat(),
        "status": status,
        "priority": "medium",
    })
    return goal_id


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def push():
    return FakePush()


@pytest.fixture
def settings():
    return Settings(SCHEDULER_ENABLED=False, ALERTS_WORKER_COUNT=2, ALERTS_USER_TIMEOUT_SECONDS=5)


@pytest.fixture
def ctx(settings, store, push):
    return AppContext(settings=settings, store=store, push=push, clock=lambda: NOW)


@pytest.fixture
def client(ctx):
    from fastapi.testclient import TestClient

    from app.main import create_app

    with TestClient(create_app(context=ctx, run_scheduler=False)) as test_client:
        yield test_client


def auth_headers(user_id):
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


@pytest.fixture
def push_failure():
    return PushDeliveryError("DeviceNotRegistered")
