"""Stripe webhook signature verification.

Stripe signs each delivery with a ``Stripe-Signature`` header of the form
``t=<unix time>,v1=<hex hmac>[,v1=...]`` where the HMAC-SHA256 covers
``"<t>.<raw body>"`` keyed by the endpoint secret.
"""
import hashlib
import hmac
import time
from typing import Optional


class SignatureVerificationError(Exception):
    """The payload was not signed with the expected secret."""


def compute_signature(payload: bytes, secret: str, timestamp: int) -> str:
    signed = f"{timestamp}.".encode() + payload
    return hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()


def build_signature_header(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    """Produce a header value the way Stripe does (used by tests and tooling)."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    return f"t={timestamp},v1={compute_signature(payload, secret, timestamp)}"


def parse_signature_header(header: str) -> tuple[Optional[int], list[str]]:
    timestamp = None
    signatures = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                timestamp = None
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


def verify_signature(payload: bytes, header: str, secret: str, tolerance: int = 300) -> int:
    """Check a webhook delivery.

    Args:
        payload: Raw request body
        header: Stripe-Signature header value
        secret: Endpoint signing secret (whsec_...)
        tolerance: Maximum age of the timestamp in seconds

    Raises:
        SignatureVerificationError: Malformed header, stale timestamp or no matching signature

    Returns:
        The signed timestamp
    """
    if not secret:
        raise SignatureVerificationError("Webhook secret is not configured")

    timestamp, signatures = parse_signature_header(header)
    if timestamp is None or not signatures:
        raise SignatureVerificationError("Unable to extract timestamp and signatures from header")

    expected = compute_signature(payload, secret, timestamp)
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise SignatureVerificationError("No signatures found matching the expected signature")

    if tolerance and abs(time.time() - timestamp) > tolerance:
        raise SignatureVerificationError("Timestamp outside the tolerance zone")

    return timestamp
