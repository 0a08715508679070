"""Signed access tokens (HS256 JWT).

Two pure functions: ``issue_token`` after a successful login and
``read_token`` in the auth dependency. The role claim is informational
only; every request reloads the profile and the resolver re-reads the role.
"""

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

ISSUER = "timekeeper"


@dataclass(frozen=True)
class TokenClaims:
    sub: str
    role: str
    exp: datetime


def issue_token(
    user_id: str,
    role: str,
    secret: str,
    algorithm: str = "HS256",
    expires_hours: int = 24,
) -> str:
    """Return a compact JWT for *user_id* valid for *expires_hours*."""
    if algorithm != "HS256":
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    issued_at = int(time.time())
    claims = {
        "sub": user_id,
        "role": role,
        "iat": issued_at,
        "exp": issued_at + expires_hours * 3600,
        "iss": ISSUER,
    }
    header = {"alg": algorithm, "typ": "JWT"}

    head = _b64encode(json.dumps(header, separators=(",", ":")).encode())
    body = _b64encode(json.dumps(claims, separators=(",", ":")).encode())
    signature = _sign(secret, head + b"." + body)
    return b".".join((head, body, _b64encode(signature))).decode()


def read_token(token: str, secret: str, algorithm: str = "HS256") -> Optional[TokenClaims]:
    """Verify *token* and return its claims.

    Returns None for anything that is not a live token from this issuer:
    malformed input, bad signature, wrong issuer, missing subject or expiry.
    """
    if algorithm != "HS256":
        return None
    try:
        head, body, signature = token.encode().split(b".")
    except ValueError:
        return None

    try:
        if not hmac.compare_digest(_sign(secret, head + b"." + body), _b64decode(signature)):
            return None
        claims = json.loads(_b64decode(body))
    except (ValueError, TypeError):
        return None

    if not isinstance(claims, dict) or claims.get("iss") != ISSUER:
        return None
    subject = claims.get("sub")
    expires = claims.get("exp")
    if not subject or not isinstance(expires, (int, float)) or time.time() > expires:
        return None

    return TokenClaims(
        sub=subject,
        role=claims.get("role", ""),
        exp=datetime.fromtimestamp(expires, tz=timezone.utc),
    )


def _sign(secret: str, signing_input: bytes) -> bytes:
    return hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()


def _b64encode(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _b64decode(data: bytes) -> bytes:
    return base64.urlsafe_b64decode(data + b"=" * (-len(data) % 4))
