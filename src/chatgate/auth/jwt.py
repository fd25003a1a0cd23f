"""JWT session token creation and verification.

Learn: JWT (JSON Web Token) gives us stateless sessions: nothing is
stored server-side. A token carries the public profile (id, email,
name) plus iat/exp, and is valid for exactly token_expire_hours (24h)
from issue. Logging out is purely client-side: the token stays valid
until it expires or jwt_secret is rotated.

Two verification styles:
- decode_token() raises TokenError (for callers that want the reason)
- verify_token() returns None for anything invalid (never raises)
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from chatgate.config import settings

_REQUIRED_CLAIMS = ("sub", "email", "name", "iat", "exp")


class TokenError(Exception):
    """Raised when token verification fails."""


@dataclass(frozen=True)
class TokenClaims:
    """The verified contents of a session token."""

    id: str
    email: str
    name: str
    issued_at: datetime
    expires_at: datetime


def issue_token(user: Any, now: Optional[datetime] = None) -> str:
    """Mint a signed session token for ``user`` (anything with id/email/name)."""
    issued = now or datetime.now(timezone.utc)
    expires = issued + timedelta(hours=settings.token_expire_hours)
    payload = {
        "sub": str(user.id),
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "iat": issued,
        "exp": expires,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Verify signature + expiry and return the raw payload.

    Raises TokenError on failure.
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": list(_REQUIRED_CLAIMS)},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")


def verify_token(token: Optional[str]) -> Optional[TokenClaims]:
    """Return the token's claims, or None if it is malformed, forged or expired."""
    if not token:
        return None
    try:
        payload = decode_token(token)
    except TokenError:
        return None
    return TokenClaims(
        id=payload["sub"],
        email=payload["email"],
        name=payload["name"],
        issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
