"""
Alert Detection
Runs the alert rules for one user and hands the results to the notifier.
Shared by the scheduled jobs and the manual trigger endpoint.
"""
import logging
from collections import Counter
from typing import Optional

from app.core.errors import UserNotFoundError
from app.models.alert import AlertPublic, DetectionOverrides, DetectionResult, meta_key
from app.models.user import AlertSettings
from app.utils.alert_rules import RuleInputs, evaluate_rules
from app.utils.ledger_stats import LedgerStatistics
from app.utils.notifier import AlertPersistError, create_and_notify

logger = logging.getLogger(__name__)


def detect_alerts_for_user(ctx, user_id: str, overrides: Optional[DetectionOverrides] = None) -> DetectionResult:
    """
    Detect and store alerts for a single user.

    Explicit overrides win over the user's stored settings. Every run creates
    fresh alerts; an identical unread alert from an earlier run is counted in
    duplicate_count and only skipped when ALERTS_SKIP_DUPLICATE_UNREAD is on.

    Raises:
        UserNotFoundError: no such user.
    """
    user = ctx.store.get_user(user_id)
    if not user:
        raise UserNotFoundError(user_id)

    settings = AlertSettings(**(user.get("alerts_settings") or {}))
    if not settings.enabled:
        logger.info(f"Alerts disabled for user {user_id}, skipping detection")
        return DetectionResult(message="Alerts are disabled for this user")

    overrides = overrides or DetectionOverrides()
    period_days = overrides.period_days if overrides.period_days is not None else settings.period_days
    increase_threshold = (
        overrides.increase_threshold if overrides.increase_threshold is not None else settings.increase_threshold
    )
    absolute_min = overrides.absolute_min if overrides.absolute_min is not None else settings.absolute_min

    now = ctx.clock()
    expenses = ctx.store.list_transactions(user_id, kind="expense")
    goals = ctx.store.list_goals(user_id)
    logger.info(
        f"Detecting alerts for user {user_id}: {len(expenses)} expenses, {len(goals)} goals, "
        f"period={period_days}d threshold={increase_threshold}% min={absolute_min}"
    )

    inputs = RuleInputs(
        stats=LedgerStatistics(expenses, now, period_days),
        goals=goals,
        now=now,
        period_days=period_days,
        increase_threshold=increase_threshold,
        absolute_min=absolute_min,
        currency=ctx.settings.CURRENCY,
    )
    evaluation = evaluate_rules(inputs, settings.types)

    unread = {
        meta_key(alert.get("kind", ""), alert.get("meta") or {})
        for alert in ctx.store.list_alerts(user_id)
        if not alert.get("read")
    }
    skip_duplicates = ctx.settings.ALERTS_SKIP_DUPLICATE_UNREAD

    result = DetectionResult(detectors=evaluation.statuses)
    persisted = Counter()
    for candidate in evaluation.candidates:
        kind = candidate.kind.value
        if meta_key(kind, candidate.meta.model_dump(mode="json")) in unread:
            result.duplicate_count += 1
            if skip_duplicates:
                continue
        try:
            outcome = create_and_notify(ctx, user, candidate.kind, candidate.title, candidate.message, candidate.meta)
        except AlertPersistError as e:
            logger.error(str(e))
            status = result.detectors[kind]
            status.status = "failed"
            status.error = str(e)
            continue
        persisted[kind] += 1
        result.created.append(AlertPublic(**outcome.alert.model_dump()))
        if outcome.delivered:
            result.delivered_count += 1

    for kind, status in result.detectors.items():
        if status.status != "disabled":
            status.created = persisted[kind]

    result.created_count = len(result.created)
    failed = [kind for kind, status in result.detectors.items() if status.status == "failed"]
    logger.info(
        f"Detection for user {user_id} created {result.created_count} alerts "
        f"({result.delivered_count} pushed, {result.duplicate_count} repeats, failed detectors: {failed or 'none'})"
    )
    return result
