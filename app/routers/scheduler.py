"""
Scheduler Router
Reports the alert scheduler status and triggers a detection batch on demand
"""
import logging
from typing import Dict, Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.context import AppContext, get_context
from app.core.security import get_current_user_id
from app.utils.scheduler import WEEKLY_PERIOD_DAYS, get_scheduler_status, run_alert_batch

router = APIRouter()
logger = logging.getLogger(__name__)


def require_admin(user_id: str = Depends(get_current_user_id), ctx: AppContext = Depends(get_context)) -> str:
    if user_id not in ctx.settings.ADMIN_USER_IDS:
        logger.warning(f"User {user_id} tried to trigger the alert batch without admin rights")
        raise HTTPException(status_code=403, detail="Admin only")
    return user_id


@router.get("/status")
def scheduler_status(user_id: str = Depends(get_current_user_id)) -> Dict:
    return get_scheduler_status()


@router.post("/run")
def trigger_batch(
    cadence: Literal["daily", "weekly"] = Query("daily"),
    user_id: str = Depends(require_admin),
    ctx: AppContext = Depends(get_context),
) -> Dict:
    """
    Run the daily or weekly alert batch right now, for every enabled user.
    Restricted to ADMIN_USER_IDS. Blocks until the batch finishes.
    """
    logger.info(f"Manual {cadence} alert batch requested by user {user_id}")
    period_days = WEEKLY_PERIOD_DAYS if cadence == "weekly" else None
    report = run_alert_batch(ctx, cadence=cadence, period_days=period_days)
    return {"success": True, "report": report.to_dict()}
