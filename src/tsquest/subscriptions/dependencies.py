"""Signature check for inbound billing events."""

from __future__ import annotations

import hashlib
import hmac

import structlog
from fastapi import Header, HTTPException, Request

from tsquest.config import get_settings

logger = structlog.get_logger()


def sign_billing_payload(secret: str, body: bytes) -> str:
    """Hex HMAC-SHA256 of the raw request body."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


async def verify_billing_signature(
    request: Request,
    x_billing_signature: str | None = Header(default=None),
) -> None:
    """Reject events whose X-Billing-Signature does not match the raw body."""
    secret = get_settings().billing_webhook_secret
    if not secret:
        raise HTTPException(status_code=503, detail="Billing events not configured")
    if not x_billing_signature:
        raise HTTPException(status_code=400, detail="Missing signature")

    expected = sign_billing_payload(secret, await request.body())
    if not hmac.compare_digest(expected, x_billing_signature):
        logger.warning("billing_signature_invalid", client=request.client.host if request.client else None)
        raise HTTPException(status_code=400, detail="Invalid signature")
