"""Transactional email API client"""

import httpx
from smartspend_scheduler.config import settings
from smartspend_scheduler.domain.exceptions import DeliveryError
from smartspend_scheduler.infrastructure.observability.metrics import delivery_latency_histogram


class EmailClient:
    """Client for the outbound email service"""

    def __init__(self, api_url: str | None = None, sender: str | None = None, timeout: float | None = None):
        self.api_url = api_url or settings.email_api_url
        self.sender = sender or settings.email_sender
        self.timeout = timeout or settings.http_timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.api_url)

    def send(self, address: str, subject: str, text: str, html: str) -> None:
        """
        Submit one email for delivery.

        Raises:
            DeliveryError: On timeout, HTTP errors, or when no API is configured
        """
        if not self.enabled:
            raise DeliveryError("Email API is not configured")

        try:
            with delivery_latency_histogram.labels(channel="email").time():
                response = httpx.post(
                    self.api_url,
                    json={
                        "from": self.sender,
                        "to": address,
                        "subject": subject,
                        "text": text,
                        "html": html,
                    },
                    timeout=self.timeout,
                )
                response.raise_for_status()

        except httpx.TimeoutException as e:
            raise DeliveryError(f"Email API timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise DeliveryError(f"Email API error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise DeliveryError(f"Email API unreachable: {e}") from e
