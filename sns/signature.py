"""SNS message signature verification.

SNS signs a canonical string assembled from a fixed, type-specific list of
envelope fields.  Each present field is rendered as ``Name\\n<value>\\n`` in
the order below and the final newline is dropped.  Reordering or adding
fields breaks compatibility with real SNS signatures.

Only SignatureVersion 1 (RSA PKCS#1 v1.5 over SHA-1) is supported.
"""

from __future__ import annotations

import base64
import logging
from typing import Awaitable, Callable

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from .envelope import (
    NOTIFICATION,
    SUBSCRIPTION_CONFIRMATION,
    UNSUBSCRIBE_CONFIRMATION,
    Envelope,
)

logger = logging.getLogger(__name__)

CertificateLoader = Callable[[str], Awaitable[str]]

# (field name in the canonical string, Envelope attribute, always included)
NOTIFICATION_FIELDS: tuple[tuple[str, str, bool], ...] = (
    ("Message", "message", True),
    ("MessageId", "message_id", False),
    ("Subject", "subject", False),
    ("Timestamp", "timestamp", False),
    ("TopicArn", "topic_arn", False),
    ("Type", "type", False),
)

CONFIRMATION_FIELDS: tuple[tuple[str, str, bool], ...] = (
    ("Message", "message", True),
    ("MessageId", "message_id", False),
    ("SubscribeURL", "subscribe_url", False),
    ("Timestamp", "timestamp", False),
    ("Token", "token", False),
    ("TopicArn", "topic_arn", False),
    ("Type", "type", False),
)

_FIELDS_BY_TYPE = {
    NOTIFICATION: NOTIFICATION_FIELDS,
    SUBSCRIPTION_CONFIRMATION: CONFIRMATION_FIELDS,
    UNSUBSCRIBE_CONFIRMATION: CONFIRMATION_FIELDS,
}


def build_string_to_sign(envelope: Envelope) -> str | None:
    """Return the canonical string for ``envelope`` or ``None`` for unknown types."""
    fields = _FIELDS_BY_TYPE.get(envelope.type or "")
    if fields is None:
        return None
    parts: list[str] = []
    for name, attr, required in fields:
        value = getattr(envelope, attr)
        if not value and not required:
            continue
        parts.append(f"{name}\n{value or ''}\n")
    canonical = "".join(parts)
    if canonical.endswith("\n"):
        canonical = canonical[:-1]
    return canonical


def verify_with_certificate(canonical: str, signature_b64: str, certificate_pem: str) -> bool:
    """Check ``signature_b64`` over ``canonical`` using the certificate's public key.

    Raises whatever ``cryptography`` raises on malformed input;
    :class:`SignatureVerifier` turns every error into ``False``.
    """
    cert = x509.load_pem_x509_certificate(certificate_pem.encode("utf-8"))
    signature = base64.b64decode(signature_b64, validate=True)
    cert.public_key().verify(
        signature,
        canonical.encode("utf-8"),
        padding.PKCS1v15(),
        hashes.SHA1(),
    )
    return True


class SignatureVerifier:
    """Fail-closed verifier: any missing field, fetch error or bad signature is ``False``."""

    def __init__(self, load_certificate: CertificateLoader) -> None:
        self._load_certificate = load_certificate

    async def verify(self, envelope: Envelope) -> bool:
        if not envelope.signature or not envelope.signing_cert_url:
            logger.info("SNS envelope %s has no signature or certificate URL", envelope.message_id)
            return False
        try:
            certificate = await self._load_certificate(envelope.signing_cert_url)
            canonical = build_string_to_sign(envelope)
            if canonical is None:
                logger.warning("Cannot verify SNS envelope of type %r", envelope.type)
                return False
            logger.debug("SNS string to sign: %r", canonical)
            return verify_with_certificate(canonical, envelope.signature, certificate)
        except Exception as exc:  # noqa: BLE001
            logger.warning("SNS signature verification failed for %s: %s", envelope.message_id, exc)
            return False


__all__ = [
    "CONFIRMATION_FIELDS",
    "CertificateLoader",
    "NOTIFICATION_FIELDS",
    "SignatureVerifier",
    "build_string_to_sign",
    "verify_with_certificate",
]
