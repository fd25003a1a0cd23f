"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to resolve the
caller's session token into verified claims. The token is taken from
the ``Authorization: Bearer`` header first, then from the session
cookie the browser client sets for the route guard.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from chatgate.auth.jwt import TokenClaims, verify_token
from chatgate.config import settings
from chatgate.errors import UnauthenticatedError
from chatgate.services.user_store import UserStore


def get_user_store(request: Request) -> UserStore:
    """The credential store attached to the app in create_app()."""
    return request.app.state.user_store


def extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return request.cookies.get(settings.cookie_name) or None


async def get_current_user_optional(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Optional[TokenClaims]:
    """Claims for the caller, or None when there is no usable token."""
    return verify_token(extract_token(request, authorization))


async def get_current_user(
    claims: Optional[TokenClaims] = Depends(get_current_user_optional),
) -> TokenClaims:
    """Claims for the caller. 401 if the token is missing, forged or expired."""
    if claims is None:
        raise UnauthenticatedError()
    return claims
