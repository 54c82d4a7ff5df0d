"""Lookup of Web Push subscriptions registered for a recipient."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Any, Iterable, Mapping

import aiohttp
import asyncpg

from .postgrest_client import PostgrestAPIError, PostgrestClient

logger = logging.getLogger(__name__)

SUBSCRIPTIONS_TABLE = "push_subscriptions"
SUBSCRIPTION_COLUMNS: tuple[str, ...] = ("endpoint", "p256dh", "auth")


class SubscriptionStoreError(RuntimeError):
    """Raised when the subscription store cannot be queried."""


@dataclass(slots=True, frozen=True)
class PushSubscription:
    endpoint: str
    p256dh: str
    auth: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PushSubscription":
        return cls(
            endpoint=str(row.get("endpoint") or ""),
            p256dh=str(row.get("p256dh") or ""),
            auth=str(row.get("auth") or ""),
        )

    def as_subscription_info(self) -> dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh, "auth": self.auth},
        }


def _rows_to_subscriptions(rows: Iterable[Mapping[str, Any]]) -> list[PushSubscription]:
    return [PushSubscription.from_row(row) for row in rows]


class SubscriptionStore:
    """Base class for subscription backends.

    ``find_by_recipient`` matches ``user_address`` case-insensitively and
    returns an empty list when nothing is registered.
    """

    async def find_by_recipient(self, recipient: str) -> list[PushSubscription]:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class PostgrestSubscriptionStore(SubscriptionStore):
    def __init__(self, client: PostgrestClient) -> None:
        self.client = client

    async def find_by_recipient(self, recipient: str) -> list[PushSubscription]:
        try:
            rows = await self.client.select(
                SUBSCRIPTIONS_TABLE,
                columns=SUBSCRIPTION_COLUMNS,
                filters={"user_address": f"ilike.{recipient}"},
            )
        except (PostgrestAPIError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise SubscriptionStoreError(f"Subscription lookup failed: {exc}") from exc
        return _rows_to_subscriptions(rows)

    async def close(self) -> None:
        await self.client.close()


class PgSubscriptionStore(SubscriptionStore):
    def __init__(self, pool: asyncpg.Pool, *, own_pool: bool = False) -> None:
        self.pool = pool
        self._own_pool = own_pool

    async def find_by_recipient(self, recipient: str) -> list[PushSubscription]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT endpoint, p256dh, auth
                    FROM push_subscriptions
                    WHERE user_address ILIKE $1
                    ORDER BY id
                    """,
                    recipient,
                )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise SubscriptionStoreError(f"Subscription lookup failed: {exc}") from exc
        return _rows_to_subscriptions(dict(row) for row in rows)

    async def close(self) -> None:
        if self._own_pool:
            await self.pool.close()


async def ensure_subscription_schema(conn: asyncpg.Connection) -> None:
    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS push_subscriptions (
            id            bigserial PRIMARY KEY,
            user_address  text NOT NULL,
            endpoint      text NOT NULL UNIQUE,
            p256dh        text NOT NULL,
            auth          text NOT NULL,
            created_at    timestamptz NOT NULL DEFAULT NOW()
        );
        """
    )
    await conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_push_subscriptions_user_address
        ON push_subscriptions (lower(user_address));
        """
    )


__all__ = [
    "PgSubscriptionStore",
    "PostgrestSubscriptionStore",
    "PushSubscription",
    "SUBSCRIPTION_COLUMNS",
    "SUBSCRIPTIONS_TABLE",
    "SubscriptionStore",
    "SubscriptionStoreError",
    "ensure_subscription_schema",
]
