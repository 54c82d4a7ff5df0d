"""Retrieval of SNS signing certificates."""

from __future__ import annotations

import asyncio
import logging
import re
from urllib.parse import urlsplit

import aiohttp

logger = logging.getLogger(__name__)


class CertificateFetchError(RuntimeError):
    """Raised when the signing certificate cannot be retrieved."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Cannot fetch signing certificate {url}: {reason}")
        self.url = url
        self.reason = reason


class CertificateFetcher:
    """Fetches PEM certificates over a shared aiohttp session.

    ``host_pattern`` optionally restricts which hosts may serve certificates;
    without it any URL named by the envelope is fetched.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        host_pattern: str | None = None,
        require_https: bool = False,
    ) -> None:
        self._session = session
        self._host_re = re.compile(host_pattern) if host_pattern else None
        self._require_https = require_https

    def _check_url(self, url: str) -> None:
        parts = urlsplit(url)
        if parts.scheme not in {"http", "https"}:
            raise CertificateFetchError(url, f"unsupported scheme {parts.scheme!r}")
        if self._require_https and parts.scheme != "https":
            raise CertificateFetchError(url, "https required")
        if self._host_re is not None and not self._host_re.fullmatch(parts.hostname or ""):
            raise CertificateFetchError(url, f"host {parts.hostname!r} is not allowed")

    async def fetch(self, url: str) -> str:
        self._check_url(url)
        try:
            async with self._session.get(url) as resp:
                if resp.status >= 400:
                    raise CertificateFetchError(url, f"HTTP {resp.status}")
                text = await resp.text()
        except CertificateFetchError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise CertificateFetchError(url, str(exc) or exc.__class__.__name__) from exc
        logger.debug("Fetched signing certificate from %s (%s bytes)", url, len(text))
        return text


__all__ = ["CertificateFetchError", "CertificateFetcher"]
