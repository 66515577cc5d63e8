import logging
from typing import Optional

import httpx

from sharelink.config import settings
from sharelink.exceptions import BillingUnavailableError
from sharelink.plans import FREE_PLAN, normalize_plan

logger = logging.getLogger(__name__)


class BillingPlanDirectory:
    """Узнает тариф пользователя у сервиса биллинга"""

    def __init__(self, base_url: str = settings.BILLING_SERVICE_URL,
                 timeout: float = settings.BILLING_TIMEOUT_SECONDS,
                 transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def get_plan(self, user_id: str) -> str:
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                response = client.get(f"/users/{user_id}/plan")
        except httpx.HTTPError as e:
            logger.error("Сервис биллинга недоступен: %s", type(e).__name__)
            raise BillingUnavailableError()

        if response.status_code == 404:
            return FREE_PLAN
        if response.status_code != 200:
            logger.error("Сервис биллинга ответил %s", response.status_code)
            raise BillingUnavailableError()

        try:
            payload = response.json()
        except ValueError:
            logger.error("Некорректный ответ сервиса биллинга")
            raise BillingUnavailableError()
        return normalize_plan(payload.get("plan") if isinstance(payload, dict) else None)
