"""
Health Check Router
Service liveness and backing-store status
"""
from fastapi import APIRouter, Depends
from datetime import datetime, timezone
import logging

from app.core.context import AppContext, get_context
from app.utils.scheduler import get_scheduler_status

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health_check(ctx: AppContext = Depends(get_context)):
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": ctx.settings.PROJECT_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/status")
def services_status(ctx: AppContext = Depends(get_context)):
    """
    Check DynamoDB table reachability and the alert scheduler.
    """
    tables = ctx.store.ping()
    for name, table_status in tables.items():
        if table_status != "accessible":
            logger.error(f"DynamoDB table {name} check failed: {table_status}")

    scheduler_status = get_scheduler_status()
    all_ok = all(value == "accessible" for value in tables.values())
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "dynamodb": {"connected": all_ok, "region": ctx.settings.DYNAMO_REGION, "tables": tables},
            "scheduler": scheduler_status,
        },
        "overall_status": "healthy" if all_ok else "degraded",
    }
