"""Error taxonomy shared by the service and API layers.

Every user-visible failure is one of these, rendered as a short JSON body
``{"error": "<message>"}`` with the matching status code. Services raise
them; the exception handler registered in ``chatgate.main`` renders them.
Messages are fixed strings, never upstream bodies or stack traces.
"""

from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse


class ChatgateError(Exception):
    """Base class. Carries the HTTP status and the client-safe message."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(ChatgateError):
    status_code = 400
    message = "Missing required fields"


class UnauthenticatedError(ChatgateError):
    status_code = 401
    message = "Authentication required"


class InvalidCredentialsError(ChatgateError):
    """Same message for "no such user" and "wrong password"."""

    status_code = 401
    message = "Invalid email or password"


class DuplicateEmailError(ChatgateError):
    status_code = 409
    message = "Email already registered"


class RateLimitedError(ChatgateError):
    status_code = 429
    message = "Rate limit exceeded. Try again later."


class UpstreamProviderError(ChatgateError):
    """The LLM provider failed. Detail goes to the log, not the client."""

    status_code = 500
    message = "The assistant is unavailable right now"


class InternalError(ChatgateError):
    status_code = 500
    message = "Internal server error"


def error_response(exc: ChatgateError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=headers,
    )


async def chatgate_error_handler(request: Request, exc: ChatgateError) -> JSONResponse:
    return error_response(exc)
