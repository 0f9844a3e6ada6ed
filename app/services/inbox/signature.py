"""Verification of Meta's ``X-Hub-Signature-256`` webhook header."""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_HEADER = "X-Hub-Signature-256"
_PREFIX = "sha256="


def compute_signature(body: bytes, app_secret: str) -> str:
    digest = hmac.new(app_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{_PREFIX}{digest}"


def verify_webhook_signature(body: bytes, signature: str | None, app_secret: str) -> bool:
    if not signature or not signature.startswith(_PREFIX):
        return False
    return hmac.compare_digest(compute_signature(body, app_secret), signature.strip())
