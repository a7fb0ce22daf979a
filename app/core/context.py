"""
Application Context
Holds the clients shared by the detection engine, the notification sink and
the scheduler. Built once at startup and handed to whoever needs it.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from fastapi import Request

from app.core.config import Settings
from app.db.dynamo import DynamoStore
from app.utils.push_service import ExpoPushClient


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AppContext:
    settings: Settings
    store: DynamoStore
    push: ExpoPushClient
    clock: Callable[[], datetime] = field(default=utcnow)

    def close(self) -> None:
        self.push.close()


def build_context(settings: Settings) -> AppContext:
    return AppContext(
        settings=settings,
        store=DynamoStore(settings),
        push=ExpoPushClient(
            base_url=settings.EXPO_PUSH_URL,
            timeout=settings.PUSH_TIMEOUT_SECONDS,
            access_token=settings.EXPO_ACCESS_TOKEN or None,
        ),
    )


def get_context(request: Request) -> AppContext:
    return request.app.state.context
