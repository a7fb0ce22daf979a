"""
Alert Service
User-facing alert operations: listing, read state, deletion, push token
registration and alert settings.
"""
import logging
from typing import Any, Dict, List, Tuple

from app.core.errors import AlertNotFoundError, UserNotFoundError
from app.models.alert import AlertPublic
from app.models.user import AlertSettings

logger = logging.getLogger(__name__)


def deep_merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Merge updates into a copy of base, descending into nested dicts key by key."""
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def list_alerts(ctx, user_id: str, limit: int = 50, skip: int = 0) -> Tuple[List[AlertPublic], int]:
    """Newest first, plus the user's total alert count."""
    alerts = ctx.store.list_alerts(user_id)
    alerts.sort(key=lambda item: item.get("created_at", ""), reverse=True)
    page = alerts[skip:skip + limit]
    return [AlertPublic(**item) for item in page], len(alerts)


def mark_read(ctx, user_id: str, alert_id: str) -> AlertPublic:
    updated = ctx.store.mark_alert_read(user_id, alert_id)
    if not updated:
        raise AlertNotFoundError(alert_id)
    return AlertPublic(**updated)


def delete_alert(ctx, user_id: str, alert_id: str) -> None:
    if not ctx.store.delete_alert(user_id, alert_id):
        raise AlertNotFoundError(alert_id)


def register_push_token(ctx, user_id: str, token: str) -> Dict[str, Any]:
    updated = ctx.store.update_user(user_id, {"push_token": token})
    if not updated:
        raise UserNotFoundError(user_id)
    logger.info(f"Registered push token for user {user_id}")
    return updated


def get_settings(ctx, user_id: str) -> AlertSettings:
    user = ctx.store.get_user(user_id)
    if not user:
        raise UserNotFoundError(user_id)
    return AlertSettings(**(user.get("alerts_settings") or {}))


def update_settings(ctx, user_id: str, partial: Dict[str, Any]) -> AlertSettings:
    """
    Deep-merge a partial update into the stored settings, so
    {"types": {"anomalies": False}} leaves the other types untouched.

    Raises:
        UserNotFoundError: no such user.
        pydantic.ValidationError: the merged settings are invalid.
    """
    current = get_settings(ctx, user_id)
    merged = AlertSettings(**deep_merge(current.model_dump(), partial))
    if not ctx.store.update_user(user_id, {"alerts_settings": merged.model_dump()}):
        raise UserNotFoundError(user_id)
    return merged
