from typing import Optional

import httpx

from sharelink.config import settings
from sharelink.exceptions import NotificationUnavailableError

NOTIFICATION_TYPE_INFO = "info"


class HttpNotifier:
    """Отправляет уведомления владельцам ссылок в сервис уведомлений"""

    def __init__(self, base_url: str = settings.NOTIFICATION_SERVICE_URL,
                 timeout: float = settings.NOTIFICATION_TIMEOUT_SECONDS,
                 transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def notify_owner(self, owner_id: str, title: str, message: str) -> None:
        payload = {
            "userId": owner_id,
            "title": title,
            "message": message,
            "type": NOTIFICATION_TYPE_INFO,
        }
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                response = client.post("/notifications", json=payload)
        except httpx.HTTPError as e:
            raise NotificationUnavailableError() from e

        if response.status_code >= 300:
            raise NotificationUnavailableError(f"Сервис уведомлений ответил {response.status_code}")
