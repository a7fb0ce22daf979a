"""
Report Service
Monthly income/expense summaries over a user's ledger
"""
import calendar
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List

from dateutil.relativedelta import relativedelta

from app.models.report import MonthlySummary, MonthlyTrend, MonthTotals
from app.utils.ledger_stats import LedgerStatistics, category_key


def _month_start(year: int, month: int) -> datetime:
    return datetime(year, month, 1, tzinfo=timezone.utc)


def _amount(txn: Dict[str, Any]) -> float:
    return float(txn.get("amount", 0))


def _by_category(rows) -> Dict[str, float]:
    totals: Dict[str, float] = defaultdict(float)
    for _, txn in rows:
        totals[category_key(txn)] += _amount(txn)
    # Largest first
    return {category: round(total, 2) for category, total in sorted(totals.items(), key=lambda kv: -kv[1])}


def _summarize(stats: LedgerStatistics, year: int, month: int) -> MonthlySummary:
    start = _month_start(year, month)
    days_in_month = calendar.monthrange(year, month)[1]

    rows = stats.between(start, start + relativedelta(months=1))
    expenses = [(moment, txn) for moment, txn in rows if txn.get("kind", "expense") == "expense"]
    income = [(moment, txn) for moment, txn in rows if txn.get("kind") == "income"]
    total_expenses = sum(_amount(txn) for _, txn in expenses)
    total_income = sum(_amount(txn) for _, txn in income)

    return MonthlySummary(
        year=year,
        month=month,
        total_expenses=round(total_expenses, 2),
        total_income=round(total_income, 2),
        balance=round(total_income - total_expenses, 2),
        expense_count=len(expenses),
        income_count=len(income),
        daily_average_expense=round(total_expenses / days_in_month, 2) if expenses else 0.0,
        expenses_by_category=_by_category(expenses),
        income_by_category=_by_category(income),
    )


def monthly_summary(transactions: List[Dict[str, Any]], year: int, month: int) -> MonthlySummary:
    """
    Totals for one calendar month (UTC): expenses vs income, per-category
    breakdown, and average daily spend over the days of that month.
    """
    end = _month_start(year, month) + relativedelta(months=1)
    stats = LedgerStatistics(transactions, now=end, period_days=calendar.monthrange(year, month)[1])
    return _summarize(stats, year, month)


def monthly_trend(transactions: List[Dict[str, Any]], now: datetime, months: int) -> MonthlyTrend:
    """The last `months` calendar months up to and including the current one, oldest first."""
    current = _month_start(now.year, now.month)
    stats = LedgerStatistics(transactions, now=now, period_days=1)

    trend = []
    for offset in range(months - 1, -1, -1):
        start = current - relativedelta(months=offset)
        summary = _summarize(stats, start.year, start.month)
        trend.append(MonthTotals(
            month=start.strftime("%Y-%m"),
            total_expenses=summary.total_expenses,
            total_income=summary.total_income,
            balance=summary.balance,
        ))
    return MonthlyTrend(months=trend)
