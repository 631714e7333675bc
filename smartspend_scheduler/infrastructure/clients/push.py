"""Realtime gateway client that pushes new notifications to connected clients"""

import httpx
from typing import Any, Dict
from smartspend_scheduler.config import settings
from smartspend_scheduler.domain.exceptions import DeliveryError
from smartspend_scheduler.infrastructure.observability.metrics import delivery_latency_histogram


class PushClient:
    """Client for the realtime gateway's publish endpoint"""

    def __init__(self, push_url: str | None = None, timeout: float | None = None):
        self.push_url = push_url or settings.notification_push_url
        self.timeout = timeout or settings.http_timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.push_url)

    def publish(self, user_id: str, payload: Dict[str, Any]) -> None:
        """
        Publish a "new-notification" event to one user's channel.

        Raises:
            DeliveryError: On timeout or HTTP errors
        """
        if not self.enabled:
            return

        try:
            with delivery_latency_histogram.labels(channel="push").time():
                response = httpx.post(
                    self.push_url,
                    json={"event": "new-notification", "user_id": user_id, "data": payload},
                    timeout=self.timeout,
                )
                response.raise_for_status()

        except httpx.TimeoutException as e:
            raise DeliveryError(f"Push gateway timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise DeliveryError(f"Push gateway error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise DeliveryError(f"Push gateway unreachable: {e}") from e
