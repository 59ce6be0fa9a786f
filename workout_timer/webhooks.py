from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import os
import time
from typing import Any, Mapping

from workout_timer.domain.errors import BadRequest

logger = logging.getLogger(__name__)

SIGNING_SECRET = os.getenv("SIGNING_SECRET")
TIMESTAMP_TOLERANCE_SECONDS = 5 * 60
SIGNATURE_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


def has_signature_headers(headers: Mapping[str, str]) -> bool:
    return any(headers.get(name) for name in SIGNATURE_HEADERS)


def _secret_bytes(secret: str) -> bytes:
    if secret.startswith("whsec_"):
        secret = secret[len("whsec_"):]
    return base64.b64decode(secret)


def sign_payload(secret: str, msg_id: str, timestamp: str, body: bytes) -> str:
    """Return the ``v1,<base64>`` signature for a webhook body."""
    signed = f"{msg_id}.{timestamp}.".encode("utf-8") + body
    digest = hmac.new(_secret_bytes(secret), signed, hashlib.sha256).digest()
    return "v1," + base64.b64encode(digest).decode("ascii")


def verify_webhook(
    secret: str | None,
    headers: Mapping[str, str],
    body: bytes,
    now: float | None = None,
) -> dict[str, Any]:
    """Check an identity-provider webhook and return its decoded JSON event."""
    msg_id = headers.get("svix-id")
    timestamp = headers.get("svix-timestamp")
    signature_header = headers.get("svix-signature")
    if not msg_id or not timestamp or not signature_header:
        raise BadRequest("Error: Missing Svix headers")

    if not secret:
        logger.warning("Webhook received but SIGNING_SECRET is not configured")
        raise BadRequest("Error: Could not verify webhook")

    try:
        sent_at = int(timestamp)
    except ValueError as exc:
        raise BadRequest("Error: Could not verify webhook") from exc
    current = time.time() if now is None else now
    if abs(current - sent_at) > TIMESTAMP_TOLERANCE_SECONDS:
        logger.warning("Webhook %s timestamp outside tolerance", msg_id)
        raise BadRequest("Error: Could not verify webhook")

    try:
        expected = sign_payload(secret, msg_id, timestamp, body)
    except ValueError as exc:
        logger.warning("SIGNING_SECRET is not valid base64")
        raise BadRequest("Error: Could not verify webhook") from exc

    # The header may carry several space-separated signatures during key rotation.
    candidates = signature_header.split(" ")
    if not any(hmac.compare_digest(expected, candidate) for candidate in candidates):
        logger.warning("Invalid webhook signature for %s", msg_id)
        raise BadRequest("Error: Could not verify webhook")

    try:
        return json.loads(body)
    except ValueError as exc:
        raise BadRequest("Error: Could not verify webhook") from exc
