"""
Webhook Security Module

Signature verification for payment-provider webhooks:
- Constant-time signature comparison
- Timestamp validation against replayed deliveries
- Raw body is read once and returned for parsing
"""

import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time"""
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_timestamp(timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS) -> bool:
    """
    Verify webhook timestamp is within acceptable range.

    Args:
        timestamp: Unix timestamp as string
        max_age: Maximum age in seconds

    Returns:
        True if timestamp is valid, False otherwise
    """
    try:
        webhook_time = int(timestamp)
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False

    age = abs(int(time.time()) - webhook_time)
    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


def parse_stripe_signature_header(header: str) -> tuple[Optional[str], list[str]]:
    """Split 't=<ts>,v1=<sig>[,v1=<sig>...]' into the timestamp and v1 signatures"""
    timestamp = None
    signatures = []
    for item in header.split(","):
        if "=" not in item:
            continue
        key, value = item.split("=", 1)
        key = key.strip()
        if key == "t":
            timestamp = value.strip()
        elif key == "v1":
            signatures.append(value.strip())
    return timestamp, signatures


def verify_stripe_signature(raw_body: bytes, signature_header: str, secret: str) -> bool:
    """Check a Stripe-Signature header against the raw request body"""
    timestamp, signatures = parse_stripe_signature_header(signature_header)
    if not timestamp or not signatures:
        logger.warning("🚫 Stripe webhook invalid signature format")
        return False

    if not verify_timestamp(timestamp):
        return False

    expected_signature = compute_hmac_sha256(secret, f"{timestamp}.".encode() + raw_body)

    if not any(constant_time_compare(expected_signature, sig) for sig in signatures):
        logger.warning("🚫 Stripe webhook signature mismatch")
        return False
    return True


async def verify_stripe_webhook(request: Request, secret: Optional[str]) -> bytes:
    """
    Verify a Stripe webhook delivery and return its raw body.

    Raises:
        HTTPException 500 when no secret is configured,
        400 when the signature header is missing,
        401 when the signature does not verify.
    """
    if not secret:
        logger.error("❌ Missing STRIPE_WEBHOOK_SECRET")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    signature_header = request.headers.get("Stripe-Signature", "")
    if not signature_header:
        logger.warning("🚫 Stripe webhook missing signature header")
        raise HTTPException(status_code=400, detail="No signature")

    raw_body = await request.body()
    if not verify_stripe_signature(raw_body, signature_header, secret):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    logger.debug("✅ Stripe webhook signature verified")
    return raw_body


def create_stripe_signature(secret: str, payload: bytes, timestamp: Optional[int] = None) -> str:
    """Create a Stripe-Signature header value for outgoing or test deliveries"""
    timestamp = timestamp if timestamp is not None else int(time.time())
    sig = compute_hmac_sha256(secret, f"{timestamp}.".encode() + payload)
    return f"t={timestamp},v1={sig}"
