"""
Subscription store integrations.

PostgREST (hosted) and direct PostgreSQL backends.
"""

from .postgrest_client import PostgrestAPIError, PostgrestClient
from .subscriptions import (
    PgSubscriptionStore,
    PostgrestSubscriptionStore,
    PushSubscription,
    SubscriptionStore,
    SubscriptionStoreError,
    ensure_subscription_schema,
)

__all__ = [
    "PostgrestAPIError",
    "PostgrestClient",
    "PgSubscriptionStore",
    "PostgrestSubscriptionStore",
    "PushSubscription",
    "SubscriptionStore",
    "SubscriptionStoreError",
    "ensure_subscription_schema",
]
