"""Owner token signing and verification.

Tokens have the form ``<owner_key>.<hex hmac-sha256(owner_key)>``. Issuing
them is left to whatever login flow fronts the API; the API only verifies.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Optional


def sign_owner_key(owner_key: str, secret: str) -> str:
    digest = hmac.new(secret.encode(), owner_key.encode(), hashlib.sha256).hexdigest()
    return f"{owner_key}.{digest}"


def verify_owner_token(token: str, secret: str) -> Optional[str]:
    """Return the owner key carried by ``token`` or ``None`` if it is invalid."""
    if not token or not secret or "." not in token:
        return None
    owner_key, received = token.rsplit(".", 1)
    if not owner_key:
        return None
    expected = hmac.new(secret.encode(), owner_key.encode(), hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, received):
        return None
    return owner_key


__all__ = ["sign_owner_key", "verify_owner_token"]
