"""aiohttp server that accepts SNS envelopes and relays them as Web Push."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Mapping

import aiohttp
from aiohttp import web

from sns import (
    NOTIFICATION,
    SUBSCRIPTION_CONFIRMATION,
    UNSUBSCRIBE_CONFIRMATION,
    Envelope,
    SignatureVerifier,
    resolve_message_type,
    unwrap_source,
)
from store import SubscriptionStore, SubscriptionStoreError
from .delivery import PushProvider, fan_out
from .events import InvalidMessageError, normalize_event, parse_message

logger = logging.getLogger(__name__)

HEALTH_TEXT = "Hello, world!"
ROUTE_PATHS = ("/", "/api", "/api/")


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


def _ok() -> web.Response:
    return web.json_response({"success": True})


class SnsWebhookServer:
    def __init__(
        self,
        *,
        session: aiohttp.ClientSession,
        verifier: SignatureVerifier,
        store: SubscriptionStore,
        provider: PushProvider,
        verify_signatures: bool = True,
        verify_confirmations: bool = False,
        push_concurrency: int = 0,
    ) -> None:
        self.session = session
        self.verifier = verifier
        self.store = store
        self.provider = provider
        self.verify_signatures = verify_signatures
        self.verify_confirmations = verify_confirmations
        self.push_concurrency = push_concurrency
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    def create_app(self) -> web.Application:
        app = web.Application()
        for path in ROUTE_PATHS:
            app.router.add_route("*", path, self._handle)
        return app

    async def start(self, host: str, port: int) -> None:
        if self._runner:
            return
        app = self.create_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, host, port)
        await self._site.start()
        logger.info("SNS webhook server listening on %s:%s", host, port)

    async def stop(self) -> None:
        if self._site:
            await self._site.stop()
            self._site = None
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        logger.info("SNS webhook server stopped")

    async def _handle(self, request: web.Request) -> web.Response:
        if request.method == "GET":
            logger.debug("GET %s health check", request.path)
            return web.Response(text=HEALTH_TEXT)
        if request.method != "POST":
            return _error("Method not allowed", 405)

        try:
            payload: Any = await request.json()
        except Exception:  # noqa: BLE001
            return _error("Invalid JSON", 400)

        try:
            return await self._dispatch(request.headers, payload)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error processing SNS message: %s", exc)
            return _error("Internal Server Error", 500)

    async def _dispatch(self, headers: Mapping[str, str], payload: Any) -> web.Response:
        sns_payload = unwrap_source(payload)
        if not isinstance(sns_payload, Mapping):
            return _error("Unsupported SNS message type", 400)
        envelope = Envelope.from_payload(sns_payload)
        msg_type = resolve_message_type(headers, sns_payload)
        if envelope.type is None and msg_type:
            # header-only transports: Type is still part of the signed string
            envelope = dataclasses.replace(envelope, type=msg_type)
        logger.info("Received SNS message type=%s id=%s", msg_type, envelope.message_id)

        if msg_type == SUBSCRIPTION_CONFIRMATION:
            await self._confirm_subscription(envelope)
            return _ok()
        if msg_type == UNSUBSCRIBE_CONFIRMATION:
            logger.info("SNS unsubscribe confirmed for topic %s", envelope.topic_arn)
            return _ok()
        if msg_type == NOTIFICATION:
            return await self._handle_notification(envelope)
        return _error("Unsupported SNS message type", 400)

    async def _is_authentic(self, envelope: Envelope) -> bool:
        if not self.verify_signatures:
            return True
        return await self.verifier.verify(envelope)

    async def _confirm_subscription(self, envelope: Envelope) -> None:
        if not envelope.subscribe_url:
            logger.warning("SNS SubscriptionConfirmation received but no SubscribeURL present")
            return
        if self.verify_confirmations and not await self._is_authentic(envelope):
            logger.warning("SNS SubscriptionConfirmation signature invalid; not confirming %s", envelope.topic_arn)
            return
        try:
            async with self.session.get(envelope.subscribe_url) as resp:
                if resp.status < 400:
                    logger.info("SNS subscription confirmed: %s", resp.status)
                else:
                    logger.warning("SNS subscription confirmation failed with status %s", resp.status)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("SNS subscription confirmation request failed: %s", exc)

    async def _handle_notification(self, envelope: Envelope) -> web.Response:
        if not await self._is_authentic(envelope):
            return _error("Invalid SNS signature", 403)

        try:
            message = parse_message(envelope.message)
        except InvalidMessageError as exc:
            logger.info("Rejecting SNS notification %s: %s", envelope.message_id, exc)
            return _error("Invalid SNS Message", 400)

        event = normalize_event(message)
        if event is None:
            logger.warning("Could not determine userAddress from SNS message %s", envelope.message_id)
            return _error("No userAddress", 200)
        if event.follower:
            logger.info("Follower detected: %s", event.follower)

        try:
            subscriptions = await self.store.find_by_recipient(event.recipient)
        except SubscriptionStoreError as exc:
            logger.error("DB error: %s", exc)
            return _error("DB error", 500)
        logger.info("Found %s subscriptions for %s", len(subscriptions), event.recipient)

        outcomes = await fan_out(
            self.provider,
            event,
            subscriptions,
            concurrency=self.push_concurrency,
        )
        logger.debug("Push results for %s: %s", envelope.message_id, outcomes)
        return _ok()


async def start_sns_webhook(
    *,
    host: str,
    port: int,
    session: aiohttp.ClientSession,
    verifier: SignatureVerifier,
    store: SubscriptionStore,
    provider: PushProvider,
    verify_signatures: bool = True,
    verify_confirmations: bool = False,
    push_concurrency: int = 0,
) -> SnsWebhookServer:
    server = SnsWebhookServer(
        session=session,
        verifier=verifier,
        store=store,
        provider=provider,
        verify_signatures=verify_signatures,
        verify_confirmations=verify_confirmations,
        push_concurrency=push_concurrency,
    )
    await server.start(host, port)
    return server


__all__ = ["HEALTH_TEXT", "SnsWebhookServer", "start_sns_webhook"]
