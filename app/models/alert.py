from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class AlertKind(str, Enum):
    SPENDING_INCREASE = "spending_increase"
    LARGE_TRANSACTION = "large_transaction"
    RECURRING_EXPENSE = "recurring_expense"
    GOAL_REMINDER = "goal_reminder"
    ANOMALIES = "anomalies"
    CUSTOM = "custom"


# Detector kinds in evaluation order
DETECTOR_KINDS = (
    AlertKind.SPENDING_INCREASE.value,
    AlertKind.LARGE_TRANSACTION.value,
    AlertKind.RECURRING_EXPENSE.value,
    AlertKind.GOAL_REMINDER.value,
    AlertKind.ANOMALIES.value,
)


class SpendingIncreaseMeta(BaseModel):
    kind: Literal["spending_increase"] = "spending_increase"
    category_id: str
    current: float
    previous: float
    percent: int


class LargeTransactionMeta(BaseModel):
    kind: Literal["large_transaction"] = "large_transaction"
    transaction_id: str
    amount: float


class RecurringExpenseMeta(BaseModel):
    kind: Literal["recurring_expense"] = "recurring_expense"
    category_id: str
    average: int


class GoalReminderMeta(BaseModel):
    kind: Literal["goal_reminder"] = "goal_reminder"
    goal_id: str


class AnomalyMeta(BaseModel):
    kind: Literal["anomalies"] = "anomalies"
    transaction_id: str
    amount: float
    average: int


class CustomMeta(BaseModel):
    model_config = ConfigDict(extra="allow")

    kind: Literal["custom"] = "custom"


AlertMeta = Annotated[
    Union[
        SpendingIncreaseMeta,
        LargeTransactionMeta,
        RecurringExpenseMeta,
        GoalReminderMeta,
        AnomalyMeta,
        CustomMeta,
    ],
    Field(discriminator="kind"),
]


class AlertCandidate(BaseModel):
    """An alert produced by a detector that has not been persisted yet."""

    kind: AlertKind
    title: str
    message: str
    meta: AlertMeta


class AlertInDB(BaseModel):
    user_id: str
    alert_id: str = Field(default_factory=lambda: str(uuid4()))
    kind: AlertKind
    title: str
    message: str = ""
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    read: bool = False
    meta: AlertMeta


class AlertPublic(BaseModel):
    alert_id: str
    kind: AlertKind
    title: str
    message: str = ""
    created_at: str
    read: bool = False
    meta: AlertMeta


class AlertList(BaseModel):
    items: List[AlertPublic]
    count: int


class DetectionOverrides(BaseModel):
    period_days: Optional[int] = Field(default=None, ge=1)
    increase_threshold: Optional[float] = Field(default=None, ge=0)
    absolute_min: Optional[float] = Field(default=None, ge=0)


class DetectorStatus(BaseModel):
    status: Literal["ok", "failed", "disabled"]
    created: int = 0
    error: Optional[str] = None


class DetectionResult(BaseModel):
    success: bool = True
    message: Optional[str] = None
    created_count: int = 0
    created: List[AlertPublic] = Field(default_factory=list)
    detectors: Dict[str, DetectorStatus] = Field(default_factory=dict)
    delivered_count: int = 0
    duplicate_count: int = 0


def meta_key(kind: str, meta: Dict[str, Any]) -> tuple:
    """Identity of an alert for duplicate checks: its kind plus its payload."""

    def _normalize(value: Any) -> str:
        # stored numbers come back as int or float depending on their value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return repr(float(value))
        return str(value)

    return (kind, tuple(sorted((k, _normalize(v)) for k, v in meta.items())))
