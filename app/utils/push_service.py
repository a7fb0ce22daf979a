"""
Push Service
Sends mobile push notifications through the Expo push API.
"""
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

_UUID_TOKEN = re.compile(r"^[a-z\d]{8}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{12}$", re.IGNORECASE)


class PushDeliveryError(Exception):
    """Raised when the push provider rejects or fails to accept a message."""


def is_expo_push_token(token: Optional[str]) -> bool:
    """Same acceptance rules as the Expo server SDKs."""
    if not token or not isinstance(token, str):
        return False
    if (token.startswith("ExponentPushToken[") or token.startswith("ExpoPushToken[")) and token.endswith("]"):
        return True
    return bool(_UUID_TOKEN.match(token))


class ExpoPushClient:
    def __init__(
        self,
        *,
        base_url: str = "https://exp.host/--/api/v2/push/send",
        timeout: float = 10.0,
        access_token: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        self._client = client or httpx.Client(timeout=timeout, headers=headers)

    def send(self, token: str, title: str, body: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send a single notification and return its push ticket.

        Raises:
            PushDeliveryError: transport failure, non-2xx response, or an
                error ticket from Expo.
        """
        message = {"to": token, "sound": "default", "title": title, "body": body, "data": data or {}}
        try:
            response = self._client.post(self.base_url, json=[message])
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise PushDeliveryError(f"Expo push request failed: {e}") from e

        tickets: List[Dict[str, Any]] = response.json().get("data") or []
        if not tickets:
            raise PushDeliveryError("Expo push response carried no ticket")
        ticket = tickets[0]
        if ticket.get("status") == "error":
            details = ticket.get("details") or {}
            raise PushDeliveryError(f"{ticket.get('message', 'push rejected')} ({details.get('error', 'unknown')})")

        logger.debug(f"Push ticket {ticket.get('id')} accepted")
        return ticket

    def close(self) -> None:
        self._client.close()
