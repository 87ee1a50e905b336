"""
Shared-secret checks for machine callers: Square webhooks and the cron scheduler.

Square signs every notification with HMAC-SHA256 over the subscription URL
followed by the raw body, base64 encoded, and sends it in
x-square-hmacsha256-signature.
https://developer.squareup.com/docs/webhooks/step3validate
"""

import base64
import hashlib
import hmac
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def constant_time_compare(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def compute_hmac_sha256_base64(secret: str, payload: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_square_signature(
    signature_key: Optional[str], body: bytes, signature: Optional[str], notification_url: str
) -> bool:
    """True when signature matches the URL-bound HMAC for this body"""
    if not signature_key:
        return False

    signed_payload = notification_url.encode("utf-8") + body
    expected = compute_hmac_sha256_base64(signature_key, signed_payload)
    if constant_time_compare(expected, signature):
        return True

    logger.warning(f"⚠️ Square signature mismatch for {notification_url} (got {(signature or '')[:12]}...)")
    return False
