"""Extraction of recipient and display text from loosely structured event messages."""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any, Mapping

NOTIFICATION_TITLE = "Lens Notification"
DEFAULT_BODY = "You have a new notification"
NOTIFICATION_ICON = "/icon_192.webp"
NOTIFICATION_URL = "/notifications"

# Each entry is a path into the message; the first non-empty value wins.
RECIPIENT_PATHS: tuple[tuple[str, ...], ...] = (
    ("author",),
    ("profile", "ownedBy"),
    ("account",),
    ("owner",),
    ("accountId",),
    ("followed_account",),
    ("mentioned_account",),
)
BODY_PATHS: tuple[tuple[str, ...], ...] = (
    ("preview",),
    ("content",),
    ("body",),
)


class InvalidMessageError(ValueError):
    """Raised when the inner SNS message is not a JSON object."""


@dataclass(slots=True, frozen=True)
class NormalizedEvent:
    recipient: str
    body: str
    follower: str | None = None
    title: str = NOTIFICATION_TITLE
    icon: str = NOTIFICATION_ICON
    url: str = NOTIFICATION_URL

    def to_payload(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "body": self.body,
            "icon": self.icon,
            "data": {"url": self.url},
        }

    def to_json(self) -> str:
        return json.dumps(self.to_payload(), ensure_ascii=False)


def parse_message(raw: str | None) -> Mapping[str, Any]:
    if raw is None:
        raise InvalidMessageError("SNS message is empty")
    try:
        message = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise InvalidMessageError(f"SNS message is not JSON: {exc}") from exc
    if not isinstance(message, Mapping):
        raise InvalidMessageError("SNS message is not a JSON object")
    return message


def _lookup(message: Mapping[str, Any], path: tuple[str, ...]) -> Any:
    node: Any = message
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


def first_present(message: Mapping[str, Any], paths: tuple[tuple[str, ...], ...]) -> str | None:
    for path in paths:
        value = _lookup(message, path)
        if not value:
            continue
        return value if isinstance(value, str) else str(value)
    return None


def extract_recipient(message: Mapping[str, Any]) -> str | None:
    return first_present(message, RECIPIENT_PATHS)


def normalize_event(message: Mapping[str, Any]) -> NormalizedEvent | None:
    """Build a :class:`NormalizedEvent`, or ``None`` when no recipient is present."""
    recipient = extract_recipient(message)
    if not recipient:
        return None
    follower = message.get("follower")
    return NormalizedEvent(
        recipient=recipient,
        body=first_present(message, BODY_PATHS) or DEFAULT_BODY,
        follower=str(follower) if follower else None,
    )


__all__ = [
    "BODY_PATHS",
    "DEFAULT_BODY",
    "InvalidMessageError",
    "NOTIFICATION_TITLE",
    "NormalizedEvent",
    "RECIPIENT_PATHS",
    "extract_recipient",
    "first_present",
    "normalize_event",
    "parse_message",
]
