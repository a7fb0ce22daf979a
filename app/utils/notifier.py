"""
Notification Sink
Persists alerts and pushes them to the user's device on a best-effort basis.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.models.alert import AlertInDB, AlertKind
from app.utils.push_service import PushDeliveryError, is_expo_push_token

logger = logging.getLogger(__name__)


class AlertPersistError(Exception):
    """Raised when the alert row could not be written."""


@dataclass
class NotifyOutcome:
    alert: AlertInDB
    persisted: bool = True
    delivered: bool = False
    skipped_reason: Optional[str] = None
    error: Optional[str] = None


def create_and_notify(
    ctx,
    user: Dict[str, Any],
    kind: AlertKind,
    title: str,
    message: str,
    meta: Any,
) -> NotifyOutcome:
    """
    Store the alert, then try a push. Push problems are logged and reported on
    the outcome; they never undo the stored alert.
    """
    alert = AlertInDB(user_id=user["user_id"], kind=kind, title=title, message=message, meta=meta)
    if not ctx.store.put_alert(alert.model_dump(mode="json")):
        raise AlertPersistError(f"Could not store {kind.value} alert for user {user['user_id']}")

    outcome = NotifyOutcome(alert=alert)
    token = user.get("push_token")
    types = (user.get("alerts_settings") or {}).get("types") or {}

    if not token:
        outcome.skipped_reason = "no_push_token"
    elif not types.get(kind.value):
        outcome.skipped_reason = "type_muted"
    elif not is_expo_push_token(token):
        outcome.skipped_reason = "invalid_push_token"
        logger.warning(f"User {user['user_id']} has an invalid push token, skipping push")
    else:
        try:
            ctx.push.send(token, title, message, data={"alert_id": alert.alert_id, "kind": kind.value})
            outcome.delivered = True
        except PushDeliveryError as e:
            outcome.error = str(e)
            logger.error(f"Push for alert {alert.alert_id} failed: {e}")
        except Exception as e:
            outcome.error = str(e)
            logger.exception(f"Unexpected error pushing alert {alert.alert_id}")

    return outcome
