"""HTTP client for the chatgate API.

Learn: Thin async wrapper around httpx. Every request carries the
session token both ways the server understands it: as a Bearer header
for the JSON API and as the session cookie for the route guard.
Successful register/login calls update the SessionContext; chat calls
append both sides of the exchange to the cached transcript.
"""

from typing import Optional

import httpx

from chatgate.client.session import SessionContext
from chatgate.schemas.auth import AuthResponse, PublicUser


class ApiError(Exception):
    """A non-2xx answer from the server."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


def _raise_for_error(r: httpx.Response) -> None:
    if r.is_success:
        return
    try:
        message = r.json().get("error") or r.reason_phrase
    except (ValueError, AttributeError):
        message = r.reason_phrase or "Request failed"
    raise ApiError(r.status_code, message)


class ChatgateClient:
    """API client bound to one SessionContext."""

    def __init__(
        self,
        base_url: str,
        session: SessionContext,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 90.0,
    ):
        self.session = session
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "ChatgateClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _auth_headers(self) -> dict[str, str]:
        token = self.session.token
        if not token:
            return {}
        return {
            "Authorization": f"Bearer {token}",
            "Cookie": f"{self.session.cookie_name}={token}",
        }

    async def _authenticate(self, path: str, body: dict) -> AuthResponse:
        r = await self._http.post(path, json=body)
        _raise_for_error(r)
        auth = AuthResponse.model_validate(r.json())
        self.session.login(auth.token, auth.user)
        return auth

    async def register(self, email: str, password: str, name: str) -> AuthResponse:
        return await self._authenticate(
            "/auth/register", {"email": email, "password": password, "name": name}
        )

    async def login(self, email: str, password: str) -> AuthResponse:
        return await self._authenticate(
            "/auth/login", {"email": email, "password": password}
        )

    async def me(self) -> PublicUser:
        r = await self._http.get("/auth/me", headers=self._auth_headers())
        _raise_for_error(r)
        return PublicUser.model_validate(r.json())

    async def chat(self, message: str) -> str:
        # The user turn is kept even if the request fails; only a reply
        # that actually arrives is recorded for the assistant.
        self.session.append_message("user", message)
        r = await self._http.post(
            "/chat", json={"message": message}, headers=self._auth_headers()
        )
        _raise_for_error(r)
        reply = r.json()["response"]
        self.session.append_message("assistant", reply)
        return reply
