"""Concurrent best-effort Web Push delivery."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Any, Sequence

from pywebpush import WebPushException, webpush

from store import PushSubscription
from .events import NormalizedEvent

logger = logging.getLogger(__name__)


class PushDeliveryError(RuntimeError):
    """Raised when the push service rejects a delivery."""

    def __init__(self, endpoint: str, message: str, status: int | None = None):
        super().__init__(f"Push to {endpoint} failed ({status}): {message}")
        self.endpoint = endpoint
        self.message = message
        self.status = status


@dataclass(slots=True, frozen=True)
class DeliveryOutcome:
    endpoint: str
    success: bool
    error: str | None = None
    status: int | None = None


class PushProvider:
    """VAPID-configured Web Push sender, built once per process."""

    def __init__(
        self,
        *,
        subject: str,
        private_key: str,
        timeout: float | None = None,
        ttl: int = 0,
    ) -> None:
        self.subject = subject
        self._private_key = private_key
        self.timeout = timeout
        self.ttl = ttl

    def _send_blocking(self, subscription: PushSubscription, data: str) -> Any:
        try:
            return webpush(
                subscription_info=subscription.as_subscription_info(),
                data=data,
                vapid_private_key=self._private_key,
                # webpush() adds aud/exp to the claims dict it receives
                vapid_claims={"sub": self.subject},
                timeout=self.timeout,
                ttl=self.ttl,
            )
        except WebPushException as exc:
            response = getattr(exc, "response", None)
            status = getattr(response, "status_code", None)
            raise PushDeliveryError(subscription.endpoint, str(exc), status) from exc

    async def send(self, subscription: PushSubscription, data: str) -> Any:
        return await asyncio.to_thread(self._send_blocking, subscription, data)


async def _deliver_one(
    provider: PushProvider,
    subscription: PushSubscription,
    data: str,
    idx: int,
    semaphore: asyncio.Semaphore | None,
) -> DeliveryOutcome:
    logger.info("Sending push notification #%s to %s", idx + 1, subscription.endpoint)
    try:
        if semaphore is None:
            await provider.send(subscription, data)
        else:
            async with semaphore:
                await provider.send(subscription, data)
    except asyncio.CancelledError:
        raise
    except PushDeliveryError as exc:
        logger.warning("Push notification #%s failed: %s", idx + 1, exc)
        return DeliveryOutcome(subscription.endpoint, False, error=exc.message, status=exc.status)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Push notification #%s failed: %s", idx + 1, exc)
        return DeliveryOutcome(subscription.endpoint, False, error=str(exc) or exc.__class__.__name__)
    logger.info("Push notification #%s sent", idx + 1)
    return DeliveryOutcome(subscription.endpoint, True)


async def fan_out(
    provider: PushProvider,
    event: NormalizedEvent,
    subscriptions: Sequence[PushSubscription],
    *,
    concurrency: int = 0,
) -> list[DeliveryOutcome]:
    """Deliver ``event`` to every subscription; outcomes keep subscription order.

    A failed attempt never cancels or affects its siblings. ``concurrency``
    bounds in-flight deliveries when positive.
    """
    if not subscriptions:
        return []
    data = event.to_json()
    semaphore = asyncio.Semaphore(concurrency) if concurrency > 0 else None
    outcomes = await asyncio.gather(
        *(_deliver_one(provider, sub, data, idx, semaphore) for idx, sub in enumerate(subscriptions))
    )
    delivered = sum(1 for item in outcomes if item.success)
    logger.info(
        "Push fan-out for %s: %s/%s delivered",
        event.recipient,
        delivered,
        len(outcomes),
    )
    return list(outcomes)


__all__ = ["DeliveryOutcome", "PushDeliveryError", "PushProvider", "fan_out"]
