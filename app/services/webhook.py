import httpx
import asyncio
import logging
from app.core.config import settings
from app.core.metrics import webhook_deliveries

logger = logging.getLogger(__name__)


async def send_webhook(payload: dict, retries: int | None = None) -> bool:

    if not settings.WEBHOOK_URL:
        logger.info(f"No webhook configured, dropping {payload.get('event')} notification")
        return False

    if retries is None:
        retries = settings.WEBHOOK_RETRIES

    backoff = 1.0

    for attempt in range(1, retries + 1):
        try:
            async with httpx.AsyncClient(timeout=settings.WEBHOOK_TIMEOUT) as client:
                response = await client.post(settings.WEBHOOK_URL, json=payload)

                if 200 <= response.status_code < 300:
                    webhook_deliveries.labels(status="success").inc()
                    logger.info(f"Webhook delivery succeeded for {payload.get('event')} {payload.get('log_id')}")
                    return True
                else:
                    logger.warning(
                        f"Webhook delivery failed (attempt {attempt}/{retries}): "
                        f"Status {response.status_code} for {payload.get('log_id')}"
                    )
        except httpx.TimeoutException:
            logger.warning(
                f"Webhook timeout (attempt {attempt}/{retries}) for {payload.get('log_id')}"
            )
        except httpx.HTTPError as e:
            logger.warning(
                f"Webhook delivery error (attempt {attempt}/{retries}): {e} "
                f"for {payload.get('log_id')}"
            )

        if attempt < retries:
            await asyncio.sleep(backoff)
            backoff *= 2.0

    webhook_deliveries.labels(status="failed").inc()
    logger.error(f"Webhook delivery failed after {retries} attempts for {payload.get('log_id')}")
    return False


def build_fallback_notification(
    log_id: str,
    pickup_address: str,
    dropoff_address: str,
    passengers: int,
    estimate: float,
    pricing_source: str,
) -> dict:
    return {
        "event": "quick_quote_fallback",
        "log_id": log_id,
        "to": settings.ADMIN_NOTIFICATION_EMAIL,
        "subject": "Quick quote fallback used",
        "text": "\n".join([
            f"A quick quote fell back to {pricing_source}.",
            f"Pickup: {pickup_address}",
            f"Drop-off: {dropoff_address}",
            f"Passengers: {passengers}",
            f"Estimate: ${estimate:.2f}",
            f"Log ID: {log_id}",
        ]),
    }


async def notify_quick_quote_fallback(**kwargs) -> bool:
    return await send_webhook(build_fallback_notification(**kwargs))
