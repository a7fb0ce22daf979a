"""
Reports Router
Monthly financial summary and month-by-month trend
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.context import AppContext, get_context
from app.core.security import get_current_user_id
from app.models.report import MonthlySummary, MonthlyTrend
from app.utils.report_service import monthly_summary, monthly_trend

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/summary", response_model=MonthlySummary)
def get_monthly_summary(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_context),
):
    """
    Income vs expenses for one calendar month (defaults to the current one),
    with per-category totals and the average daily spend.
    """
    now = ctx.clock()
    year = year or now.year
    month = month or now.month
    logger.info(f"Generating monthly summary for user_id: {user_id}, month: {year}-{month:02d}")

    try:
        return monthly_summary(ctx.store.list_transactions(user_id), year, month)
    except Exception as e:
        logger.error(f"Error generating summary: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error generating summary")


@router.get("/trend", response_model=MonthlyTrend)
def get_monthly_trend(
    months: int = Query(6, ge=1, le=24),
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_context),
):
    """Monthly income/expense totals for the last `months` months, oldest first."""
    try:
        return monthly_trend(ctx.store.list_transactions(user_id), ctx.clock(), months)
    except Exception as e:
        logger.error(f"Error generating trend: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error generating trend")
