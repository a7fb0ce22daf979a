from __future__ import annotations

import logging
import statistics
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

UNCATEGORIZED = "uncategorized"
MAX_LISTED_TRANSACTIONS = 50
RECURRING_LOOKBACK_MONTHS = 3


def parse_timestamp(value: Any) -> datetime:
    """Parse a stored transaction date into an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Invalid transaction date: {value!r}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def category_key(transaction: Dict[str, Any]) -> str:
    category = transaction.get("category_id")
    return str(category) if category else UNCATEGORIZED


@dataclass(frozen=True)
class Windows:
    """Current window is [current_start, end]; previous is [previous_start, current_start)."""

    previous_start: datetime
    current_start: datetime
    end: datetime

    def in_current(self, moment: datetime) -> bool:
        return self.current_start <= moment <= self.end

    def in_previous(self, moment: datetime) -> bool:
        return self.previous_start <= moment < self.current_start


def build_windows(now: datetime, period_days: int) -> Windows:
    current_start = now - timedelta(days=period_days)
    return Windows(
        previous_start=current_start - timedelta(days=period_days),
        current_start=current_start,
        end=now,
    )


@dataclass
class CategoryRecurrence:
    category_id: str
    months_count: int
    average: float


class LedgerStatistics:
    """
    Aggregates over one user's transactions relative to a reference instant.

    Rows whose date cannot be parsed fall outside every window; they are
    logged and left out of the windowed aggregates.
    """

    def __init__(self, transactions: List[Dict[str, Any]], now: datetime, period_days: int) -> None:
        self._transactions = transactions
        self.now = now
        self.period_days = period_days
        self.windows = build_windows(now, period_days)
        self._dated_cache: Optional[List[Tuple[datetime, Dict[str, Any]]]] = None

    def _dated(self) -> List[Tuple[datetime, Dict[str, Any]]]:
        if self._dated_cache is None:
            dated = []
            for txn in self._transactions:
                try:
                    dated.append((parse_timestamp(txn.get("date")), txn))
                except ValueError:
                    logger.warning(
                        f"Skipping transaction {txn.get('transaction_id')} with unparsable date {txn.get('date')!r}"
                    )
            dated.sort(key=lambda pair: pair[0])
            self._dated_cache = dated
        return self._dated_cache

    def between(self, start: datetime, end: datetime) -> List[Tuple[datetime, Dict[str, Any]]]:
        """Dated rows in [start, end), oldest first."""
        return [(moment, txn) for moment, txn in self._dated() if start <= moment < end]

    @staticmethod
    def _amount(transaction: Dict[str, Any]) -> float:
        return float(transaction.get("amount", 0))

    def category_totals(self, window: str = "current") -> Dict[str, float]:
        """Per-category sums for the 'current' or 'previous' window, in first-seen order."""
        contains = self.windows.in_current if window == "current" else self.windows.in_previous
        totals: Dict[str, float] = defaultdict(float)
        for moment, txn in self._dated():
            if contains(moment):
                totals[category_key(txn)] += self._amount(txn)
        return dict(totals)

    def current_amounts(self) -> List[float]:
        return [self._amount(txn) for moment, txn in self._dated() if self.windows.in_current(moment)]

    def current_mean_and_stdev(self) -> Tuple[float, float]:
        """Average and population standard deviation of the current window."""
        amounts = self.current_amounts()
        if not amounts:
            return 0.0, 0.0
        mean = statistics.fmean(amounts)
        stdev = statistics.pstdev(amounts) if len(amounts) > 1 else 0.0
        return mean, stdev

    def lifetime_average(self) -> float:
        amounts = [self._amount(txn) for txn in self._transactions]
        return statistics.fmean(amounts) if amounts else 0.0

    def current_transactions(
        self,
        min_amount: Optional[float] = None,
        limit: int = MAX_LISTED_TRANSACTIONS,
    ) -> List[Tuple[datetime, Dict[str, Any]]]:
        """Current-window transactions, newest first, optionally above a floor."""
        selected = [
            (moment, txn)
            for moment, txn in self._dated()
            if self.windows.in_current(moment)
            and (min_amount is None or self._amount(txn) >= min_amount)
        ]
        selected.reverse()
        return selected[:limit]

    def monthly_category_totals(self, months: int = RECURRING_LOOKBACK_MONTHS) -> Dict[str, Dict[str, float]]:
        """Category -> {"YYYY-MM": total} over [now - months, now]."""
        since = self.now - relativedelta(months=months)
        buckets: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
        for moment, txn in self._dated():
            if since <= moment <= self.now:
                buckets[category_key(txn)][moment.strftime("%Y-%m")] += self._amount(txn)
        return {category: dict(months_map) for category, months_map in buckets.items()}

    def recurring_categories(self, absolute_min: float, min_months: int = 3) -> List[CategoryRecurrence]:
        recurring = []
        for category, months_map in self.monthly_category_totals().items():
            if len(months_map) < min_months:
                continue
            average = statistics.fmean(months_map.values())
            if average >= absolute_min:
                recurring.append(CategoryRecurrence(category, len(months_map), average))
        return recurring
