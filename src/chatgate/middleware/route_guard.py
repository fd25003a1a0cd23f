"""Route guard — keeps page navigations behind the session cookie.

Learn: The decision is a pure function of (path, token present?):

    auth page + token     → redirect to /        (already signed in)
    auth page + no token  → allow
    other page + token    → allow
    other page + no token → redirect to /login

The middleware only feeds it. It runs once per navigation (GET/HEAD),
before the page handler, reads the single session cookie, and skips the
JSON API, docs and static paths, which answer 401 on their own.

By default only the cookie's *presence* counts: an expired or forged
token gets past the guard and is rejected later by the API. Set
CHATGATE_GUARD_VERIFY_TOKENS=true to have the middleware check
signature and expiry and treat a bad cookie as no cookie.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from chatgate.auth.jwt import verify_token

logger = structlog.get_logger()

HOME_PATH = "/"
LOGIN_PATH = "/login"
AUTH_PAGES = frozenset({"/login", "/register"})

EXEMPT_PREFIXES = ("/auth/", "/static/")
EXEMPT_PATHS = frozenset(
    {"/auth", "/chat", "/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico"}
)
NAVIGATION_METHODS = frozenset({"GET", "HEAD"})


@dataclass(frozen=True)
class GuardDecision:
    redirect_to: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.redirect_to is None


ALLOW = GuardDecision()


def decide(path: str, has_token: bool) -> GuardDecision:
    """Serve or redirect a navigation to ``path``."""
    is_auth_page = path in AUTH_PAGES
    if is_auth_page and has_token:
        return GuardDecision(redirect_to=HOME_PATH)
    if not is_auth_page and not has_token:
        return GuardDecision(redirect_to=LOGIN_PATH)
    return ALLOW


def is_exempt(path: str) -> bool:
    """API, docs and static paths are never guarded."""
    if path in EXEMPT_PATHS or path.startswith(EXEMPT_PREFIXES):
        return True
    return path.startswith("/chat/")


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """Redirect page navigations whose session state doesn't match the page."""

    def __init__(self, app, cookie_name: str = "token", verify_tokens: bool = False):
        super().__init__(app)
        self.cookie_name = cookie_name
        self.verify_tokens = verify_tokens

    def has_token(self, request: Request) -> bool:
        token = request.cookies.get(self.cookie_name)
        if not token:
            return False
        if self.verify_tokens:
            return verify_token(token) is not None
        return True

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if request.method not in NAVIGATION_METHODS or is_exempt(path):
            return await call_next(request)

        decision = decide(path, self.has_token(request))
        if decision.allowed:
            return await call_next(request)

        logger.debug("route_guard.redirect", path=path, to=decision.redirect_to)
        return RedirectResponse(url=decision.redirect_to, status_code=307)
