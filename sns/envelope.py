"""SNS envelope model and transport-level helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

NOTIFICATION = "Notification"
SUBSCRIPTION_CONFIRMATION = "SubscriptionConfirmation"
UNSUBSCRIBE_CONFIRMATION = "UnsubscribeConfirmation"

MESSAGE_TYPE_HEADER = "x-amz-sns-message-type"


@dataclass(slots=True, frozen=True)
class Envelope:
    type: str | None
    message: str | None = None
    message_id: str | None = None
    subject: str | None = None
    timestamp: str | None = None
    topic_arn: str | None = None
    subscribe_url: str | None = None
    token: str | None = None
    signature: str | None = None
    signing_cert_url: str | None = None
    signature_version: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Envelope":
        return cls(
            type=_str_or_none(payload.get("Type")),
            message=_str_or_none(payload.get("Message")),
            message_id=_str_or_none(payload.get("MessageId")),
            subject=_str_or_none(payload.get("Subject")),
            timestamp=_str_or_none(payload.get("Timestamp")),
            topic_arn=_str_or_none(payload.get("TopicArn")),
            subscribe_url=_str_or_none(payload.get("SubscribeURL")),
            token=_str_or_none(payload.get("Token")),
            signature=_str_or_none(payload.get("Signature")),
            signing_cert_url=_str_or_none(payload.get("SigningCertURL")),
            signature_version=_str_or_none(payload.get("SignatureVersion")),
        )


def _str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def unwrap_source(payload: Mapping[str, Any] | Any) -> Mapping[str, Any] | Any:
    """Return the envelope, unwrapping relays that nest it under ``source``."""
    if not isinstance(payload, Mapping):
        return payload
    source = payload.get("source")
    if isinstance(source, Mapping) and source.get("Type"):
        return source
    return payload


def resolve_message_type(headers: Mapping[str, str], payload: Mapping[str, Any]) -> str | None:
    # some transports only set the header, others only the body field
    header_value = headers.get(MESSAGE_TYPE_HEADER)
    if header_value:
        return header_value
    body_value = payload.get("Type")
    return str(body_value) if body_value else None


__all__ = [
    "Envelope",
    "MESSAGE_TYPE_HEADER",
    "NOTIFICATION",
    "SUBSCRIPTION_CONFIRMATION",
    "UNSUBSCRIBE_CONFIRMATION",
    "resolve_message_type",
    "unwrap_source",
]
