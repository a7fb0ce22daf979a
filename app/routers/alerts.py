"""
Alerts Router
Lists and manages a user's alerts, runs detection on demand and stores alert
settings and push tokens.
"""
import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError

from app.core.context import AppContext, get_context
from app.core.errors import AlertNotFoundError, UserNotFoundError
from app.core.security import get_current_user_id
from app.models.alert import AlertList, AlertPublic, DetectionOverrides, DetectionResult
from app.models.user import AlertSettings, AlertSettingsUpdate, PushTokenRegister, UserPublic
from app.utils import alert_service
from app.utils.detection import detect_alerts_for_user

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_model=AlertList)
def list_alerts(
    limit: int = Query(50, ge=1, le=200),
    skip: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_context),
):
    items, count = alert_service.list_alerts(ctx, user_id, limit=limit, skip=skip)
    return AlertList(items=items, count=count)


@router.get("/settings", response_model=AlertSettings)
def get_alert_settings(user_id: str = Depends(get_current_user_id), ctx: AppContext = Depends(get_context)):
    try:
        return alert_service.get_settings(ctx, user_id)
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


@router.put("/settings", response_model=AlertSettings)
def update_alert_settings(
    updates: AlertSettingsUpdate,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_context),
):
    try:
        return alert_service.update_settings(ctx, user_id, updates.model_dump(exclude_unset=True))
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


@router.post("/register", response_model=UserPublic)
def register_push_token(
    body: PushTokenRegister,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_context),
):
    token = body.token.strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token is required")
    try:
        user = alert_service.register_push_token(ctx, user_id, token)
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserPublic(**user)


@router.post("/run", response_model=DetectionResult)
def run_detection(
    overrides: Optional[DetectionOverrides] = None,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_context),
):
    """
    Run alert detection for the current user right away.
    Useful for debugging the rules; returns the created alerts inline.
    """
    try:
        return detect_alerts_for_user(ctx, user_id, overrides)
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


@router.put("/{alert_id}/read", response_model=AlertPublic)
def mark_alert_read(alert_id: str, user_id: str = Depends(get_current_user_id), ctx: AppContext = Depends(get_context)):
    try:
        return alert_service.mark_read(ctx, user_id, alert_id)
    except AlertNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert not found")


@router.delete("/{alert_id}")
def delete_alert(alert_id: str, user_id: str = Depends(get_current_user_id), ctx: AppContext = Depends(get_context)) -> Dict:
    try:
        alert_service.delete_alert(ctx, user_id, alert_id)
    except AlertNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert not found")
    return {"success": True}
