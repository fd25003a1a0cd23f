"""Auth API — registration, login, current user.

Learn: Routes for user authentication:
- POST /auth/register → create an account, answer with token + profile
- POST /auth/login → email/password → token + profile
- GET /auth/me → profile for the caller's token

Both POST handlers catch anything unexpected from their collaborators,
log it, and answer a bare 500. Internals never reach the client.
"""

import structlog
from fastapi import APIRouter, Depends

from chatgate.auth.dependencies import get_current_user, get_user_store
from chatgate.auth.jwt import TokenClaims
from chatgate.errors import ChatgateError, InternalError, UnauthenticatedError
from chatgate.schemas.auth import AuthResponse, LoginRequest, PublicUser, RegisterRequest
from chatgate.services.auth_service import AuthService
from chatgate.services.user_store import UserStore

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


def _svc(store: UserStore = Depends(get_user_store)) -> AuthService:
    return AuthService(store)


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, svc: AuthService = Depends(_svc)):
    """Create a new user account."""
    try:
        token, user = await svc.register(body.email, body.password, body.name)
    except ChatgateError:
        raise
    except Exception:
        logger.exception("auth.register_error")
        raise InternalError()
    return AuthResponse(token=token, user=PublicUser.model_validate(user))


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, svc: AuthService = Depends(_svc)):
    """Login with email and password → session token."""
    try:
        token, user = await svc.login(body.email, body.password)
    except ChatgateError:
        raise
    except Exception:
        logger.exception("auth.login_error")
        raise InternalError()
    return AuthResponse(token=token, user=PublicUser.model_validate(user))


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=PublicUser)
async def get_me(
    claims: TokenClaims = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
):
    """Profile for the caller.

    Unlike the route guard, this also checks that the user embedded in
    the token still exists in the store.
    """
    user = await store.get(claims.id)
    if user is None:
        logger.info("auth.token_user_missing", user_id=claims.id)
        raise UnauthenticatedError()
    return PublicUser.model_validate(user)
