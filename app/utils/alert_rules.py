"""
Alert Rules
Stateless detectors that turn ledger statistics into candidate alerts.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Tuple

from app.models.alert import (
    AlertCandidate,
    AlertKind,
    AnomalyMeta,
    DetectorStatus,
    GoalReminderMeta,
    LargeTransactionMeta,
    RecurringExpenseMeta,
    SpendingIncreaseMeta,
)
from app.utils.ledger_stats import LedgerStatistics

logger = logging.getLogger(__name__)

LARGE_TRANSACTION_FLOOR = 500.0
ANOMALY_SIGMA = 3.0
GOAL_LOOKAHEAD_DAYS = 7


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class RuleInputs:
    stats: LedgerStatistics
    goals: List[Dict[str, Any]]
    now: datetime
    period_days: int
    increase_threshold: float
    absolute_min: float
    currency: str = "MZN"


@dataclass
class RuleEvaluation:
    candidates: List[AlertCandidate] = field(default_factory=list)
    statuses: Dict[str, DetectorStatus] = field(default_factory=dict)


def _describe(transaction: Dict[str, Any]) -> str:
    return transaction.get("title") or transaction.get("description") or "no description"


def detect_spending_increase(inputs: RuleInputs) -> List[AlertCandidate]:
    current = inputs.stats.category_totals("current")
    previous = inputs.stats.category_totals("previous")

    candidates = []
    for category, total in current.items():
        prev = previous.get(category, 0.0)
        delta = total - prev
        percent = (delta / prev) * 100 if prev > 0 else 100.0
        if delta > inputs.absolute_min and percent >= inputs.increase_threshold:
            rounded = round_half_up(percent)
            candidates.append(AlertCandidate(
                kind=AlertKind.SPENDING_INCREASE,
                title="Spending increase detected",
                message=(
                    f"Spending in category {category} rose {rounded}% "
                    f"(+{delta:.2f}) over the last {inputs.period_days} days."
                ),
                meta=SpendingIncreaseMeta(category_id=category, current=total, previous=prev, percent=rounded),
            ))
    return candidates


def detect_large_transactions(inputs: RuleInputs) -> List[AlertCandidate]:
    threshold = max(inputs.stats.lifetime_average() * 2, LARGE_TRANSACTION_FLOOR)

    candidates = []
    for moment, txn in inputs.stats.current_transactions(min_amount=threshold):
        amount = float(txn["amount"])
        candidates.append(AlertCandidate(
            kind=AlertKind.LARGE_TRANSACTION,
            title="Large expense detected",
            message=f"Expense of {inputs.currency} {amount:.2f} on {_describe(txn)} dated {moment:%Y-%m-%d}.",
            meta=LargeTransactionMeta(transaction_id=str(txn["transaction_id"]), amount=amount),
        ))
    return candidates


def detect_recurring_expenses(inputs: RuleInputs) -> List[AlertCandidate]:
    candidates = []
    for recurrence in inputs.stats.recurring_categories(inputs.absolute_min):
        average = round_half_up(recurrence.average)
        candidates.append(AlertCandidate(
            kind=AlertKind.RECURRING_EXPENSE,
            title="Recurring expense detected",
            message=(
                f"Category {recurrence.category_id} averages {inputs.currency} {average} "
                f"per month over the last 3 months."
            ),
            meta=RecurringExpenseMeta(category_id=recurrence.category_id, average=average),
        ))
    return candidates


def detect_goal_reminders(inputs: RuleInputs) -> List[AlertCandidate]:
    horizon = (inputs.now + timedelta(days=GOAL_LOOKAHEAD_DAYS)).date()

    candidates = []
    for goal in inputs.goals:
        if goal.get("status") == "done":
            continue
        if date.fromisoformat(goal["start_date"]) > horizon:
            continue
        candidates.append(AlertCandidate(
            kind=AlertKind.GOAL_REMINDER,
            title="Goal reminder",
            message=f'Goal "{goal.get("title", "")}" starts on {goal["start_date"]}. Plan ahead and follow through.',
            meta=GoalReminderMeta(goal_id=str(goal["goal_id"])),
        ))
    return candidates


def detect_anomalies(inputs: RuleInputs) -> List[AlertCandidate]:
    mean, stdev = inputs.stats.current_mean_and_stdev()
    threshold = mean + ANOMALY_SIGMA * stdev
    average = round_half_up(mean)

    candidates = []
    for moment, txn in inputs.stats.current_transactions(min_amount=threshold):
        amount = float(txn["amount"])
        # with zero variance the threshold collapses onto the mean
        if amount <= mean:
            continue
        candidates.append(AlertCandidate(
            kind=AlertKind.ANOMALIES,
            title="Unusual transaction detected",
            message=f"Atypical transaction of {inputs.currency} {amount:.2f} on {_describe(txn)} (average {average}).",
            meta=AnomalyMeta(transaction_id=str(txn["transaction_id"]), amount=amount, average=average),
        ))
    return candidates


Detector = Callable[[RuleInputs], List[AlertCandidate]]

DETECTORS: Tuple[Tuple[str, Detector], ...] = (
    (AlertKind.SPENDING_INCREASE.value, detect_spending_increase),
    (AlertKind.LARGE_TRANSACTION.value, detect_large_transactions),
    (AlertKind.RECURRING_EXPENSE.value, detect_recurring_expenses),
    (AlertKind.GOAL_REMINDER.value, detect_goal_reminders),
    (AlertKind.ANOMALIES.value, detect_anomalies),
)


def evaluate_rules(inputs: RuleInputs, enabled_types: Mapping[str, bool]) -> RuleEvaluation:
    """
    Run every detector in order. A detector switched off in enabled_types is
    skipped; one that raises is logged and reported as failed while the rest
    still run.
    """
    evaluation = RuleEvaluation()
    for kind, detector in DETECTORS:
        if enabled_types.get(kind, True) is False:
            evaluation.statuses[kind] = DetectorStatus(status="disabled")
            continue
        try:
            found = detector(inputs)
        except Exception as e:
            logger.exception(f"Detector {kind} failed")
            evaluation.statuses[kind] = DetectorStatus(status="failed", error=str(e))
            continue
        evaluation.candidates.extend(found)
        evaluation.statuses[kind] = DetectorStatus(status="ok", created=len(found))
    return evaluation
