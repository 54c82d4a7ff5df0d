"""Notification subsystem exports."""

from .events import (
    InvalidMessageError,
    NormalizedEvent,
    extract_recipient,
    normalize_event,
    parse_message,
)
from .delivery import DeliveryOutcome, PushDeliveryError, PushProvider, fan_out
from .webhook import SnsWebhookServer, start_sns_webhook

__all__ = [
    "DeliveryOutcome",
    "InvalidMessageError",
    "NormalizedEvent",
    "PushDeliveryError",
    "PushProvider",
    "SnsWebhookServer",
    "extract_recipient",
    "fan_out",
    "normalize_event",
    "parse_message",
    "start_sns_webhook",
]
