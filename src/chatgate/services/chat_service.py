"""Chat proxy — forwards a user message to an LLM chat-completion API.

Learn: the provider is an external collaborator with a simple
request/response contract (OpenRouter / OpenAI-style
``POST {base_url}/chat/completions``). We send a fixed system prompt plus
the user's message and hand back the first choice's text.

Failure policy: anything that goes wrong upstream (unreachable, non-2xx,
body that isn't JSON) becomes UpstreamProviderError with a fixed, safe
message. What the provider actually said is logged, never returned.
"""

from typing import Any, Optional

import httpx
import structlog

from chatgate.errors import UpstreamProviderError

logger = structlog.get_logger()

FALLBACK_REPLY = "No response."


def first_completion_text(data: Any) -> Optional[str]:
    """Pull choices[0].message.content out of a completion body, if present."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, str) and content:
        return content
    return None


def _upstream_error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if error:
            return str(error)
    return str(data)[:500]


class ChatService:
    """Talks to the LLM provider over a shared httpx.AsyncClient."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_key: str,
        base_url: str,
        model: str,
        system_prompt: str,
        timeout: float = 60.0,
    ):
        self.client = client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.system_prompt = system_prompt
        self.timeout = timeout

    def build_payload(self, message: str) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": message},
            ],
        }

    async def complete(self, message: str) -> str:
        """Send ``message`` and return the assistant's reply text."""
        if not self.api_key:
            logger.error("chat.no_api_key", hint="set CHATGATE_LLM_API_KEY")
            raise UpstreamProviderError()

        url = f"{self.base_url}/chat/completions"
        try:
            response = await self.client.post(
                url,
                json=self.build_payload(message),
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.warning("chat.upstream_unreachable", url=url, error=str(e))
            raise UpstreamProviderError()

        if response.is_error:
            logger.warning(
                "chat.upstream_failed",
                status=response.status_code,
                detail=_upstream_error_detail(response),
            )
            raise UpstreamProviderError()

        try:
            data = response.json()
        except ValueError:
            logger.warning("chat.upstream_bad_body", status=response.status_code)
            raise UpstreamProviderError()

        text = first_completion_text(data)
        if text is None:
            logger.info("chat.empty_completion", model=self.model)
            return FALLBACK_REPLY
        return text
