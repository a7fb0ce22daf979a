from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Dict, Optional
from uuid import uuid4
from datetime import datetime, timezone

from app.models.alert import DETECTOR_KINDS


def _default_alert_types() -> Dict[str, bool]:
    return {kind: True for kind in DETECTOR_KINDS}


class AlertSettings(BaseModel):
    enabled: bool = True
    period_days: int = Field(default=30, ge=1)
    increase_threshold: float = Field(default=30, ge=0)  # percent
    absolute_min: float = Field(default=100, ge=0)  # currency amount
    types: Dict[str, bool] = Field(default_factory=_default_alert_types)

    @field_validator("types")
    @classmethod
    def _known_kinds(cls, value: Dict[str, bool]) -> Dict[str, bool]:
        unknown = set(value) - set(DETECTOR_KINDS)
        if unknown:
            raise ValueError(f"Unknown alert types: {', '.join(sorted(unknown))}")
        return value


class AlertSettingsUpdate(BaseModel):
    enabled: Optional[bool] = None
    period_days: Optional[int] = Field(default=None, ge=1)
    increase_threshold: Optional[float] = Field(default=None, ge=0)
    absolute_min: Optional[float] = Field(default=None, ge=0)
    types: Optional[Dict[str, bool]] = None


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: Optional[str] = None


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserInDB(BaseModel):
    user_id: str = Field(default_factory=lambda: str(uuid4()))
    email: EmailStr
    password_hash: str
    name: Optional[str] = None
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    push_token: Optional[str] = None
    alerts_settings: AlertSettings = Field(default_factory=AlertSettings)


class UserPublic(BaseModel):
    user_id: str
    email: EmailStr
    name: Optional[str] = None
    created_at: str
    push_token: Optional[str] = None


class PushTokenRegister(BaseModel):
    token: str
