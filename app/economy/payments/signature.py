from __future__ import annotations

import hashlib
import hmac


def compute_signature(secret: str, raw_body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(secret: str, raw_body: bytes, signature: str | None) -> bool:
    if not secret or not signature:
        return False
    expected = compute_signature(secret, raw_body)
    return hmac.compare_digest(expected, signature.strip().lower())
