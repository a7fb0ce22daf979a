from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "LifeLedger"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    CURRENCY: str = Field(default="MZN")

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_TABLE_USERS: str = Field(default="lifeledger-users")
    DYNAMO_TABLE_TRANSACTIONS: str = Field(default="lifeledger-transactions")
    DYNAMO_TABLE_ALERTS: str = Field(default="lifeledger-alerts")
    DYNAMO_TABLE_GOALS: str = Field(default="lifeledger-goals")

    # JWT Authentication
    JWT_SECRET: str = Field(default="change-me")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # Users allowed to run the all-users alert batch by hand (JSON list in env)
    ADMIN_USER_IDS: List[str] = Field(default_factory=list)

    # Expo push notifications
    EXPO_PUSH_URL: str = Field(default="https://exp.host/--/api/v2/push/send")
    EXPO_ACCESS_TOKEN: str = Field(default="")
    PUSH_TIMEOUT_SECONDS: float = Field(default=10.0)

    # Alert scheduler (cron times are UTC)
    SCHEDULER_ENABLED: bool = Field(default=True)
    ALERTS_DAILY_HOUR: int = Field(default=2)
    ALERTS_DAILY_MINUTE: int = Field(default=0)
    ALERTS_WEEKLY_DAY: str = Field(default="mon")
    ALERTS_WEEKLY_HOUR: int = Field(default=3)
    ALERTS_WEEKLY_MINUTE: int = Field(default=0)
    ALERTS_WORKER_COUNT: int = Field(default=4, ge=1)
    ALERTS_USER_TIMEOUT_SECONDS: float = Field(default=60.0)

    # Repeated runs create fresh alerts unless this is switched on
    ALERTS_SKIP_DUPLICATE_UNREAD: bool = Field(default=False)


settings = Settings()
