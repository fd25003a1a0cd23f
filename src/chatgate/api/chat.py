"""Chat API — proxy a message to the LLM provider.

POST /chat {message} → {response}. Requires a session token unless
CHATGATE_CHAT_REQUIRES_AUTH is turned off.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request

from chatgate.auth.dependencies import get_current_user_optional
from chatgate.auth.jwt import TokenClaims
from chatgate.config import settings
from chatgate.errors import ChatgateError, InternalError, UnauthenticatedError, ValidationError
from chatgate.schemas.chat import ChatRequest, ChatResponse
from chatgate.services.chat_service import ChatService

logger = structlog.get_logger()

router = APIRouter()


def _svc(request: Request) -> ChatService:
    return ChatService(
        request.app.state.http_client,
        api_key=settings.llm_api_key,
        base_url=settings.llm_base_url,
        model=settings.llm_model,
        system_prompt=settings.llm_system_prompt,
        timeout=settings.llm_timeout_seconds,
    )


async def _caller(
    claims: Optional[TokenClaims] = Depends(get_current_user_optional),
) -> Optional[TokenClaims]:
    if claims is None and settings.chat_requires_auth:
        raise UnauthenticatedError()
    return claims


@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    caller: Optional[TokenClaims] = Depends(_caller),
    svc: ChatService = Depends(_svc),
):
    """Forward one message and return the first completion's text."""
    if body.message is None or not body.message.strip():
        raise ValidationError("Message is required")

    try:
        reply = await svc.complete(body.message)
    except ChatgateError:
        raise
    except Exception:
        logger.exception("chat.error")
        raise InternalError()

    logger.info(
        "chat.completed",
        user_id=caller.id if caller else None,
        chars_in=len(body.message),
        chars_out=len(reply),
    )
    return ChatResponse(response=reply)
