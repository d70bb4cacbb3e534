"""
Session token utilities.

Session tokens are HS256 JWTs issued after an account logs in. The chat
gateway only verifies them; account management lives elsewhere.
"""

from __future__ import annotations

import hashlib
import time
import uuid
from typing import Any

import jwt
from fastapi import HTTPException, status

from shared.config.settings import Settings, settings as default_settings
from shared.config.logging import get_logger

logger = get_logger(__name__)


def _hash_jti(jti: str) -> str:
    """Hash JTI for logging to avoid exposing token identifiers."""
    return hashlib.sha256(jti.encode()).hexdigest()[:8]


def issue_session_token(
    user_id: str,
    username: str,
    ttl_seconds: int | None = None,
    settings: Settings | None = None,
) -> str:
    """
    Sign a session token for an authenticated account.

    Args:
        user_id: Stable account identifier (becomes the "sub" claim).
        username: Display name shown to other participants ("name" claim).
        ttl_seconds: Token lifetime. Defaults to session_token_expire_minutes.
        settings: Settings to sign with (defaults to the process settings).

    Returns:
        Signed JWT string.
    """
    cfg = settings or default_settings
    if ttl_seconds is None:
        ttl_seconds = cfg.session_token_expire_minutes * 60

    now = int(time.time())
    data = {
        "sub": str(user_id),
        "name": username,
        "iss": cfg.session_issuer,
        "aud": cfg.session_audience,
        "iat": now,
        "exp": now + ttl_seconds,
        "type": "session",
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(data, cfg.session_secret, algorithm="HS256")


def verify_session_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    """
    Verify and decode a session token.

    Args:
        token: The JWT token string.
        settings: Settings to verify with (defaults to the process settings).

    Returns:
        Decoded token claims, guaranteed to contain non-empty "sub" and "name".

    Raises:
        HTTPException: If token is invalid, expired or missing required claims.
    """
    cfg = settings or default_settings
    try:
        payload = jwt.decode(
            token,
            cfg.session_secret,
            algorithms=["HS256"],
            audience=cfg.session_audience,
            issuer=cfg.session_issuer,
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except jwt.InvalidTokenError as e:
        # Log the actual error for debugging, but return generic message to client
        logger.warning("Session token validation failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    if payload.get("type") != "session":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: wrong token type",
        )

    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing subject claim",
        )

    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing name claim",
        )

    jti = payload.get("jti")
    if jti:
        logger.debug("Session token verified", user_id=sub, jti_hash=_hash_jti(jti))

    return payload
