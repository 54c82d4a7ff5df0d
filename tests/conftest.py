from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.x509.oid import NameOID

from sns import Envelope, build_string_to_sign

CERT_URL = "https://sns.us-east-1.amazonaws.com/SimpleNotificationService-test.pem"


def _make_certificate(key: rsa.RSAPrivateKey) -> str:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "sns.amazonaws.com")])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")


@pytest.fixture(scope="session")
def signing_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def certificate_pem(signing_key) -> str:
    return _make_certificate(signing_key)


@pytest.fixture(scope="session")
def other_certificate_pem() -> str:
    return _make_certificate(rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture
def sign_payload(signing_key) -> Callable[[dict[str, Any]], dict[str, Any]]:
    """Return a helper that adds a valid Signature/SigningCertURL to an SNS body."""

    def _sign(payload: dict[str, Any]) -> dict[str, Any]:
        signed = dict(payload)
        signed.setdefault("SigningCertURL", CERT_URL)
        signed.setdefault("SignatureVersion", "1")
        canonical = build_string_to_sign(Envelope.from_payload(signed))
        assert canonical is not None
        signature = signing_key.sign(canonical.encode("utf-8"), padding.PKCS1v15(), hashes.SHA1())
        signed["Signature"] = base64.b64encode(signature).decode("ascii")
        return signed

    return _sign


@pytest.fixture
def notification_body() -> dict[str, Any]:
    return {
        "Type": "Notification",
        "MessageId": "22b80b92-fdea-4c2c-8f9d-bdfb0c7bf324",
        "TopicArn": "arn:aws:sns:us-east-1:123456789012:lens-notifications",
        "Subject": "New comment",
        "Message": '{"author": "0xABC", "content": "hi"}',
        "Timestamp": "2024-05-01T12:00:00.000Z",
    }
