from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.context import AppContext, get_context
from app.core.security import get_current_user_id
from app.models.goal import GoalCreate, GoalInDB, GoalPublic, GoalUpdate

router = APIRouter()


@router.post("/", response_model=GoalPublic, status_code=status.HTTP_201_CREATED)
def create_goal(goal: GoalCreate, user_id: str = Depends(get_current_user_id), ctx: AppContext = Depends(get_context)):
    goal_db = GoalInDB(user_id=user_id, **goal.model_dump())
    if not ctx.store.put_goal(goal_db.model_dump()):
        raise HTTPException(status_code=500, detail="Failed to save goal")
    return GoalPublic(**goal_db.model_dump())


@router.get("/", response_model=List[GoalPublic])
def list_goals(user_id: str = Depends(get_current_user_id), ctx: AppContext = Depends(get_context)):
    goals = ctx.store.list_goals(user_id)
    goals.sort(key=lambda item: item.get("start_date", ""))
    return [GoalPublic(**item) for item in goals]


@router.put("/{goal_id}", response_model=GoalPublic)
def update_goal(
    goal_id: str,
    goal_update: GoalUpdate,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_context),
):
    updates = goal_update.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    for field in ("start_date", "end_date"):
        if field in updates:
            try:
                date.fromisoformat(updates[field])
            except (TypeError, ValueError):
                raise HTTPException(status_code=400, detail=f"Invalid {field}: {updates[field]}")

    updated = ctx.store.update_goal(user_id, goal_id, updates)
    if not updated:
        raise HTTPException(status_code=404, detail="Goal not found")
    return GoalPublic(**updated)


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_goal(goal_id: str, user_id: str = Depends(get_current_user_id), ctx: AppContext = Depends(get_context)):
    if not ctx.store.delete_goal(user_id, goal_id):
        raise HTTPException(status_code=404, detail="Goal not found")
    return None
