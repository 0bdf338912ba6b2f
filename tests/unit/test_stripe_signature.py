"""Stripe signature header verification tests."""
import time

import pytest

from app.infrastructure.services.stripe_signature import (
    SignatureVerificationError,
    build_signature_header,
    compute_signature,
    parse_signature_header,
    verify_signature,
)

SECRET = "whsec_unit"
PAYLOAD = b'{"id": "evt_1", "type": "checkout.session.completed"}'


def test_valid_signature_returns_timestamp():
    now = int(time.time())
    header = build_signature_header(PAYLOAD, SECRET, now)

    assert verify_signature(PAYLOAD, header, SECRET) == now


def test_any_matching_v1_is_accepted():
    now = int(time.time())
    header = f"t={now},v1=deadbeef,v1={compute_signature(PAYLOAD, SECRET, now)}"

    assert verify_signature(PAYLOAD, header, SECRET) == now


def test_tampered_payload_rejected():
    header = build_signature_header(PAYLOAD, SECRET)

    with pytest.raises(SignatureVerificationError):
        verify_signature(PAYLOAD + b" ", header, SECRET)


def test_wrong_secret_rejected():
    header = build_signature_header(PAYLOAD, "whsec_other")

    with pytest.raises(SignatureVerificationError):
        verify_signature(PAYLOAD, header, SECRET)


def test_stale_timestamp_rejected():
    header = build_signature_header(PAYLOAD, SECRET, int(time.time()) - 3600)

    with pytest.raises(SignatureVerificationError, match="tolerance"):
        verify_signature(PAYLOAD, header, SECRET, tolerance=300)


def test_malformed_header_rejected():
    with pytest.raises(SignatureVerificationError):
        verify_signature(PAYLOAD, "garbage", SECRET)


def test_missing_secret_rejected():
    header = build_signature_header(PAYLOAD, SECRET)

    with pytest.raises(SignatureVerificationError):
        verify_signature(PAYLOAD, header, "")


def test_parse_signature_header():
    assert parse_signature_header("t=12,v1=abc,v0=old,v1=def") == (12, ["abc", "def"])
    assert parse_signature_header("t=soon,v1=abc") == (None, ["abc"])
