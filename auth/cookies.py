"""
Session cookie signing.

The cookie carries ``<session_id>.<hmac-sha256 hex>`` so a forged or
edited id is rejected before any store lookup.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Optional

from fastapi import Response

from config.settings import SessionPolicy


def _signature(secret: str, session_id: str) -> str:
    return hmac.new(secret.encode(), session_id.encode(), hashlib.sha256).hexdigest()


def sign_session_id(session_id: str, secret: str) -> str:
    return f"{session_id}.{_signature(secret, session_id)}"


def unsign_session_id(value: str, secret: str) -> Optional[str]:
    """Return the session id if the signature checks out, else ``None``."""
    if not value:
        return None
    session_id, sep, sig = value.rpartition(".")
    if not sep or not session_id:
        return None
    if not hmac.compare_digest(sig, _signature(secret, session_id)):
        return None
    return session_id


def set_session_cookie(response: Response, session_id: str, policy: SessionPolicy) -> None:
    response.set_cookie(
        key=policy.cookie_name,
        value=sign_session_id(session_id, policy.secret),
        max_age=policy.max_age_seconds,
        httponly=policy.http_only,
        secure=policy.secure,
        samesite=policy.samesite,
        path="/",
    )


def clear_session_cookie(response: Response, policy: SessionPolicy) -> None:
    response.delete_cookie(
        key=policy.cookie_name,
        path="/",
        httponly=policy.http_only,
        secure=policy.secure,
        samesite=policy.samesite,
    )
