from typing import Dict, List

from pydantic import BaseModel


class MonthlySummary(BaseModel):
    year: int
    month: int
    total_expenses: float = 0.0
    total_income: float = 0.0
    balance: float = 0.0
    expense_count: int = 0
    income_count: int = 0
    daily_average_expense: float = 0.0
    expenses_by_category: Dict[str, float] = {}
    income_by_category: Dict[str, float] = {}


class MonthTotals(BaseModel):
    month: str  # YYYY-MM
    total_expenses: float = 0.0
    total_income: float = 0.0
    balance: float = 0.0


class MonthlyTrend(BaseModel):
    months: List[MonthTotals]
