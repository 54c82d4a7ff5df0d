from __future__ import annotations

import asyncio
import logging

import aiohttp
import asyncpg

from config import Settings, load_settings
from notifications import PushProvider, SnsWebhookServer, start_sns_webhook
from sns import CertificateFetcher, SignatureVerifier
from store import (
    PgSubscriptionStore,
    PostgrestClient,
    PostgrestSubscriptionStore,
    SubscriptionStore,
    ensure_subscription_schema,
)

logger = logging.getLogger(__name__)


def build_provider(settings: Settings) -> PushProvider:
    return PushProvider(
        subject=settings.vapid_subject,
        private_key=settings.vapid_private_key or "",
        timeout=settings.push_timeout,
    )


async def build_store(settings: Settings, session: aiohttp.ClientSession) -> SubscriptionStore:
    if settings.db_dsn:
        pool = await asyncpg.create_pool(dsn=settings.db_dsn, min_size=1, max_size=5)
        async with pool.acquire() as conn:
            await ensure_subscription_schema(conn)
        logger.info("Using PostgreSQL subscription store")
        return PgSubscriptionStore(pool, own_pool=True)
    client = PostgrestClient(settings.store_url or "", settings.store_service_key or "", session=session)
    logger.info("Using PostgREST subscription store at %s", settings.store_url)
    return PostgrestSubscriptionStore(client)


async def main() -> None:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level)
    settings.validate()

    timeout = aiohttp.ClientTimeout(total=settings.http_timeout)
    session = aiohttp.ClientSession(timeout=timeout)
    store: SubscriptionStore | None = None
    server: SnsWebhookServer | None = None
    try:
        store = await build_store(settings, session)
        fetcher = CertificateFetcher(
            session,
            host_pattern=settings.cert_host_pattern,
            require_https=settings.cert_require_https,
        )
        server = await start_sns_webhook(
            host=settings.host,
            port=settings.port,
            session=session,
            verifier=SignatureVerifier(fetcher.fetch),
            store=store,
            provider=build_provider(settings),
            verify_signatures=settings.verify_signatures,
            verify_confirmations=settings.verify_confirmations,
            push_concurrency=settings.push_max_concurrency,
        )
        await asyncio.Event().wait()
    finally:
        if server is not None:
            await server.stop()
        if store is not None:
            await store.close()
        await session.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
