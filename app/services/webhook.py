"""Outbound webhook delivery of confirmed offers."""

import logging
from typing import Optional

import httpx

from app.config import settings
from app.models.schemas import OfferNotification
from app.services.exceptions import WebhookDeliveryError
from app.utils.helpers import truncate_text

logger = logging.getLogger(__name__)


class OfferWebhookNotifier:
    """
    Hands a flattened offer payload to the external webhook sink.

    One request/response call per confirmation.  Failures are reported to
    the caller and never retried automatically.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = settings.OFFER_WEBHOOK_URL if url is None else url
        self.timeout = float(settings.WEBHOOK_TIMEOUT)
        self._transport = transport

    async def send(self, notification: OfferNotification) -> None:
        """
        POST *notification* as JSON.

        Raises:
            WebhookDeliveryError: no URL configured, timeout, connection
                failure, or a non-2xx response.
        """
        if not self.url:
            raise WebhookDeliveryError("OFFER_WEBHOOK_URL is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.url,
                    json=notification.model_dump(mode="json"),
                    headers={"Content-Type": "application/json"},
                )
        except httpx.TimeoutException as exc:
            logger.error("Offer webhook timeout (%s)", self.url)
            raise WebhookDeliveryError("Webhook timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("Offer webhook error: %s", exc)
            raise WebhookDeliveryError(f"Webhook unreachable: {exc}") from exc

        if not response.is_success:
            logger.error(
                "Offer webhook rejected payload: %d - %s",
                response.status_code,
                truncate_text(response.text, 300),
            )
            raise WebhookDeliveryError(f"Webhook returned HTTP {response.status_code}")

        logger.info("Offer webhook delivered: %r", notification.offer_subject)


def get_webhook_notifier() -> OfferWebhookNotifier:
    """FastAPI dependency."""
    return OfferWebhookNotifier()
