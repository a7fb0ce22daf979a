import pytest

from app.core.errors import UserNotFoundError
from app.models.alert import DetectionOverrides
from app.utils.detection import detect_alerts_for_user
from conftest import add_expense, add_goal, add_user

VALID_TOKEN = "ExponentPushToken[abc123]"


def _seed_increase(store, user_id):
    add_expense(store, user_id, 100, days_ago=45)
    add_expense(store, user_id, 300, days_ago=2)


def test_disabled_user_gets_no_alerts(ctx, store):
    add_user(store, "off", enabled=False)
    _seed_increase(store, "off")

    result = detect_alerts_for_user(ctx, "off")

    assert result.created_count == 0
    assert store.alert_count("off") == 0


def test_unknown_user_raises(ctx):
    with pytest.raises(UserNotFoundError):
        detect_alerts_for_user(ctx, "ghost")


def test_detection_persists_alerts(ctx, store):
    add_user(store, "u1")
    _seed_increase(store, "u1")

    result = detect_alerts_for_user(ctx, "u1")

    assert result.success
    assert result.created_count == 1
    alert = result.created[0]
    assert alert.kind.value == "spending_increase"
    assert alert.meta.percent == 200
    assert store.alert_count("u1") == 1
    assert result.detectors["spending_increase"].created == 1
    assert result.detectors["anomalies"].status == "ok"


def test_repeated_runs_duplicate_alerts(ctx, store):
    add_user(store, "u1")
    _seed_increase(store, "u1")

    first = detect_alerts_for_user(ctx, "u1")
    second = detect_alerts_for_user(ctx, "u1")

    assert first.created_count == second.created_count == 1
    assert store.alert_count("u1") == 2
    assert first.duplicate_count == 0
    assert second.duplicate_count == 1


def test_duplicate_unread_alerts_can_be_skipped(ctx, store):
    ctx.settings.ALERTS_SKIP_DUPLICATE_UNREAD = True
    add_user(store, "u1")
    _seed_increase(store, "u1")

    detect_alerts_for_user(ctx, "u1")
    second = detect_alerts_for_user(ctx, "u1")

    assert second.created_count == 0
    assert second.duplicate_count == 1
    assert store.alert_count("u1") == 1


def test_overrides_win_over_stored_settings(ctx, store):
    add_user(store, "u1", absolute_min=1000)
    _seed_increase(store, "u1")

    assert detect_alerts_for_user(ctx, "u1").created_count == 0
    result = detect_alerts_for_user(ctx, "u1", DetectionOverrides(absolute_min=50))
    assert result.created_count == 1


def test_income_is_not_scanned(ctx, store):
    add_user(store, "u1")
    add_expense(store, "u1", 5000, days_ago=1, kind="income")

    assert detect_alerts_for_user(ctx, "u1").created_count == 0


def test_alerts_are_scoped_to_owner(ctx, store):
    add_user(store, "u1")
    add_user(store, "u2")
    _seed_increase(store, "u2")

    assert detect_alerts_for_user(ctx, "u1").created_count == 0
    assert store.alert_count("u2") == 0


def test_push_sent_for_enabled_type(ctx, store, push):
    add_user(store, "u1", push_token=VALID_TOKEN)
    _seed_increase(store, "u1")

    result = detect_alerts_for_user(ctx, "u1")

    assert result.delivered_count == 1
    assert push.sent[0]["to"] == VALID_TOKEN
    assert push.sent[0]["data"]["alert_id"] == result.created[0].alert_id


def test_push_skipped_for_muted_type(ctx, store, push):
    add_user(store, "u1", push_token=VALID_TOKEN, types={"spending_increase": False})
    add_goal(store, "u1", start_in_days=1)

    result = detect_alerts_for_user(ctx, "u1")

    # spending_increase detector is off; goal_reminder fires and pushes
    assert [a.kind.value for a in result.created] == ["goal_reminder"]
    assert result.detectors["spending_increase"].status == "disabled"
    assert len(push.sent) == 1


def test_push_skipped_for_invalid_token(ctx, store, push):
    add_user(store, "u1", push_token="not-a-token")
    _seed_increase(store, "u1")

    result = detect_alerts_for_user(ctx, "u1")

    assert result.created_count == 1
    assert result.delivered_count == 0
    assert push.sent == []


def test_push_failure_keeps_alert(ctx, store, push, push_failure):
    push.fail_with = push_failure
    add_user(store, "u1", push_token=VALID_TOKEN)
    _seed_increase(store, "u1")

    result = detect_alerts_for_user(ctx, "u1")

    assert result.created_count == 1
    assert result.delivered_count == 0
    assert store.alert_count("u1") == 1


def test_broken_goal_does_not_block_other_detectors(ctx, store):
    add_user(store, "u1")
    _seed_increase(store, "u1")
    store.put_goal({"user_id": "u1", "goal_id": "bad", "title": "Broken", "start_date": "someday", "status": "pending"})

    result = detect_alerts_for_user(ctx, "u1")

    assert result.detectors["goal_reminder"].status == "failed"
    assert result.detectors["spending_increase"].status == "ok"
    assert result.created_count == 1
