"""Tests for SNS canonical strings and signature verification."""

import base64
import textwrap
from unittest.mock import AsyncMock

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import serialization

from sns import CertificateFetchError, Envelope, SignatureVerifier, build_string_to_sign


# ---------------------------------------------------------------------------
# Canonical string
# ---------------------------------------------------------------------------


def test_notification_string_to_sign_order(notification_body):
    envelope = Envelope.from_payload(notification_body)
    assert build_string_to_sign(envelope) == (
        "Message\n{\"author\": \"0xABC\", \"content\": \"hi\"}\n"
        "MessageId\n22b80b92-fdea-4c2c-8f9d-bdfb0c7bf324\n"
        "Subject\nNew comment\n"
        "Timestamp\n2024-05-01T12:00:00.000Z\n"
        "TopicArn\narn:aws:sns:us-east-1:123456789012:lens-notifications\n"
        "Type\nNotification"
    )


def test_notification_skips_absent_optional_fields():
    envelope = Envelope.from_payload({"Type": "Notification", "Message": "m"})
    assert build_string_to_sign(envelope) == "Message\nm\nType\nNotification"


def test_notification_ignores_confirmation_fields(notification_body):
    body = dict(notification_body, Token="tok", SubscribeURL="https://example.com/confirm")
    assert build_string_to_sign(Envelope.from_payload(body)) == build_string_to_sign(
        Envelope.from_payload(notification_body)
    )


@pytest.mark.parametrize("msg_type", ["SubscriptionConfirmation", "UnsubscribeConfirmation"])
def test_confirmation_string_to_sign_order(msg_type):
    envelope = Envelope.from_payload(
        {
            "Type": msg_type,
            "Message": "You have chosen to subscribe",
            "MessageId": "mid",
            "Subject": "ignored",
            "SubscribeURL": "https://sns.example.com/?Action=ConfirmSubscription",
            "Timestamp": "2024-05-01T12:00:00.000Z",
            "Token": "tok",
            "TopicArn": "arn:topic",
        }
    )
    assert build_string_to_sign(envelope) == (
        "Message\nYou have chosen to subscribe\n"
        "MessageId\nmid\n"
        "SubscribeURL\nhttps://sns.example.com/?Action=ConfirmSubscription\n"
        "Timestamp\n2024-05-01T12:00:00.000Z\n"
        "Token\ntok\n"
        "TopicArn\narn:topic\n"
        f"Type\n{msg_type}"
    )


def test_unknown_type_has_no_string_to_sign():
    assert build_string_to_sign(Envelope.from_payload({"Type": "Other", "Message": "m"})) is None


def test_string_to_sign_is_deterministic(notification_body):
    envelope = Envelope.from_payload(notification_body)
    first = build_string_to_sign(envelope)
    assert all(build_string_to_sign(envelope) == first for _ in range(5))


# ---------------------------------------------------------------------------
# Verifier
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["Signature", "SigningCertURL"])
async def test_missing_signature_fields_fail_without_fetch(notification_body, sign_payload, missing):
    body = sign_payload(notification_body)
    body.pop(missing)
    loader = AsyncMock(return_value="unused")
    verifier = SignatureVerifier(loader)
    assert await verifier.verify(Envelope.from_payload(body)) is False
    loader.assert_not_awaited()


@pytest.mark.asyncio
async def test_valid_signature_accepted(notification_body, sign_payload, certificate_pem):
    body = sign_payload(notification_body)
    loader = AsyncMock(return_value=certificate_pem)
    verifier = SignatureVerifier(loader)
    assert await verifier.verify(Envelope.from_payload(body)) is True
    loader.assert_awaited_once_with(body["SigningCertURL"])


@pytest.mark.asyncio
async def test_valid_confirmation_signature_accepted(sign_payload, certificate_pem):
    body = sign_payload(
        {
            "Type": "SubscriptionConfirmation",
            "Message": "confirm",
            "SubscribeURL": "https://sns.example.com/confirm",
            "Token": "tok",
            "TopicArn": "arn:topic",
        }
    )
    verifier = SignatureVerifier(AsyncMock(return_value=certificate_pem))
    assert await verifier.verify(Envelope.from_payload(body)) is True


@pytest.mark.asyncio
async def test_mutated_signature_rejected(notification_body, sign_payload, certificate_pem):
    body = sign_payload(notification_body)
    raw = bytearray(base64.b64decode(body["Signature"]))
    raw[10] ^= 0x01
    body["Signature"] = base64.b64encode(bytes(raw)).decode("ascii")
    verifier = SignatureVerifier(AsyncMock(return_value=certificate_pem))
    assert await verifier.verify(Envelope.from_payload(body)) is False


@pytest.mark.asyncio
async def test_mutated_message_rejected(notification_body, sign_payload, certificate_pem):
    body = sign_payload(notification_body)
    body["Message"] = body["Message"].replace("hi", "hI")
    verifier = SignatureVerifier(AsyncMock(return_value=certificate_pem))
    assert await verifier.verify(Envelope.from_payload(body)) is False


@pytest.mark.asyncio
async def test_other_certificate_rejected(notification_body, sign_payload, other_certificate_pem):
    verifier = SignatureVerifier(AsyncMock(return_value=other_certificate_pem))
    assert await verifier.verify(Envelope.from_payload(sign_payload(notification_body))) is False


@pytest.mark.asyncio
async def test_garbage_certificate_rejected(notification_body, sign_payload, certificate_pem):
    broken = certificate_pem.replace("MII", "XII", 1)
    verifier = SignatureVerifier(AsyncMock(return_value=broken))
    assert await verifier.verify(Envelope.from_payload(sign_payload(notification_body))) is False


@pytest.mark.asyncio
async def test_fetch_failure_fails_closed(notification_body, sign_payload):
    loader = AsyncMock(side_effect=CertificateFetchError("https://sns.example.com/cert.pem", "HTTP 404"))
    verifier = SignatureVerifier(loader)
    assert await verifier.verify(Envelope.from_payload(sign_payload(notification_body))) is False


@pytest.mark.asyncio
async def test_unknown_type_fails_closed(sign_payload, certificate_pem, notification_body):
    body = sign_payload(notification_body)
    body["Type"] = "SomethingElse"
    verifier = SignatureVerifier(AsyncMock(return_value=certificate_pem))
    assert await verifier.verify(Envelope.from_payload(body)) is False


@pytest.mark.asyncio
async def test_non_base64_signature_fails_closed(notification_body, sign_payload, certificate_pem):
    body = sign_payload(notification_body)
    body["Signature"] = "not base64 !!"
    verifier = SignatureVerifier(AsyncMock(return_value=certificate_pem))
    assert await verifier.verify(Envelope.from_payload(body)) is False


def _flip_modulus_byte(certificate_pem: str, signing_key) -> str:
    der = bytearray(
        x509.load_pem_x509_certificate(certificate_pem.encode("ascii")).public_bytes(serialization.Encoding.DER)
    )
    modulus = signing_key.public_key().public_numbers().n.to_bytes(256, "big")
    offset = bytes(der).index(modulus) + len(modulus) // 2
    der[offset] ^= 0x01
    body = "\n".join(textwrap.wrap(base64.b64encode(bytes(der)).decode("ascii"), 64))
    return f"-----BEGIN CERTIFICATE-----\n{body}\n-----END CERTIFICATE-----\n"


@pytest.mark.asyncio
async def test_single_byte_certificate_change_rejected(notification_body, sign_payload, certificate_pem, signing_key):
    tampered = _flip_modulus_byte(certificate_pem, signing_key)
    assert tampered != certificate_pem
    verifier = SignatureVerifier(AsyncMock(return_value=tampered))
    assert await verifier.verify(Envelope.from_payload(sign_payload(notification_body))) is False
