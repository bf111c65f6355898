"""
Webhook signature verification.

AEM signs each webhook with HMAC-SHA256 over the exact raw request body and
sends the hex digest in the x-adobe-signature header. Verification must run
on the bytes as received: re-serializing parsed JSON changes key order and
whitespace and breaks the digest.
"""

import hashlib
import hmac
import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-adobe-signature"

_HEX_DIGEST_RE = re.compile(r"[0-9a-f]{64}")


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Return the hex-encoded HMAC-SHA256 of raw_body keyed by secret."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def signature_required(secret: Optional[str]) -> bool:
    """
    Verification is skipped entirely when no secret is configured, so that
    unauthenticated test environments can post events directly.
    """
    return bool(secret)


def verify_signature(raw_body: bytes, signature_header: Optional[str], secret: str) -> bool:
    """
    Check a webhook signature in constant time.

    Returns False when the header is absent, is not a 64-character hex
    digest, or does not match the expected digest.
    """
    if not signature_header:
        return False

    provided = signature_header.strip()
    if not _HEX_DIGEST_RE.fullmatch(provided):
        logger.debug("Malformed signature header (length %d)", len(provided))
        return False

    expected = compute_signature(raw_body, secret)
    return hmac.compare_digest(provided, expected)
