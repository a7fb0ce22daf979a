import logging

from fastapi import APIRouter, HTTPException, status, Depends

from app.core.context import AppContext, get_context
from app.core.security import get_password_hash, verify_password, create_access_token, get_current_user_id
from app.models.user import UserCreate, UserLogin, UserInDB, UserPublic

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, ctx: AppContext = Depends(get_context)):
    existing = ctx.store.get_user_by_email(user.email)
    if existing:
        raise HTTPException(status_code=400, detail="User already exists")

    # alerts_settings starts out with the default values
    user_db = UserInDB(
        email=user.email,
        name=user.name,
        password_hash=get_password_hash(user.password),
    )

    success = ctx.store.put_user(user_db.model_dump())
    if not success:
        raise HTTPException(status_code=500, detail="Error saving user")

    logger.info(f"Registered user {user_db.user_id}")
    return UserPublic(**user_db.model_dump())


@router.get("/me", response_model=UserPublic)
def get_current_user(user_id: str = Depends(get_current_user_id), ctx: AppContext = Depends(get_context)):
    """Get current user profile"""
    user = ctx.store.get_user(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserPublic(**user)


@router.post("/login")
def login(login_data: UserLogin, ctx: AppContext = Depends(get_context)):
    logger.info(f"Login attempt for email: {login_data.email}")
    user = ctx.store.get_user_by_email(login_data.email)

    if not user:
        logger.warning(f"User not found: {login_data.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if not verify_password(login_data.password, user["password_hash"]):
        logger.warning(f"Invalid password for user: {login_data.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    access_token = create_access_token(data={"sub": user["user_id"]})
    logger.info(f"Login successful for user: {login_data.email}")

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": UserPublic(**user).model_dump(),
    }
