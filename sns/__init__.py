"""
Amazon SNS transport helpers.

Envelope parsing, signing-certificate retrieval and signature verification.
"""

from .certificates import CertificateFetchError, CertificateFetcher
from .envelope import (
    MESSAGE_TYPE_HEADER,
    NOTIFICATION,
    SUBSCRIPTION_CONFIRMATION,
    UNSUBSCRIBE_CONFIRMATION,
    Envelope,
    resolve_message_type,
    unwrap_source,
)
from .signature import SignatureVerifier, build_string_to_sign, verify_with_certificate

__all__ = [
    "CertificateFetchError",
    "CertificateFetcher",
    "Envelope",
    "MESSAGE_TYPE_HEADER",
    "NOTIFICATION",
    "SUBSCRIPTION_CONFIRMATION",
    "UNSUBSCRIBE_CONFIRMATION",
    "SignatureVerifier",
    "build_string_to_sign",
    "resolve_message_type",
    "unwrap_source",
    "verify_with_certificate",
]
