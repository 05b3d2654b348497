"""HTTP client for the upstream chat-completion provider.

One request per call: no retries, no streaming, no conversation state. Failed
calls are translated into the application's upstream exceptions so the API
can tell the caller whether to fix the key, back off, or fix the request.
"""

from typing import Any, Dict, Optional

import httpx

from core.config import (
    APP_REFERER,
    APP_TITLE,
    LLM_API_BASE_URL,
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
)
from core.exceptions import (
    AppException,
    UpstreamAuthError,
    UpstreamBadRequestError,
    UpstreamRateLimitError,
    UpstreamServiceError,
)
from core.logger import get_logger

logger = get_logger("services.llm_client")


def _upstream_message(response: httpx.Response) -> Optional[str]:
    """Best-effort error message from an OpenAI-style error body."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:200] or None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
        if body.get("message"):
            return str(body["message"])
    return None


def map_upstream_error(response: httpx.Response) -> AppException:
    """Translate an upstream error status into an application exception."""
    status = response.status_code
    message = _upstream_message(response)
    if status == 401:
        return UpstreamAuthError(message)
    if status == 429:
        return UpstreamRateLimitError(response.headers.get("retry-after"))
    if 400 <= status < 500:
        return UpstreamBadRequestError(status, message)
    return UpstreamServiceError(f"upstream_status_{status}")


class ChatCompletionClient:
    """Thin wrapper over ``POST {base_url}/chat/completions``.

    The `httpx.AsyncClient` is owned by the application and carries the
    request timeout; this class only builds requests and reads replies.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = LLM_API_BASE_URL,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_TOKENS,
        referer: str = APP_REFERER,
        title: str = APP_TITLE,
    ):
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.referer = referer
        self.title = title

    def _payload(self, prompt: str, model: str) -> Dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }

    def _headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.referer,
            "X-Title": self.title,
        }

    async def complete(self, prompt: str, api_key: str, model: str) -> Optional[str]:
        """Send `prompt` as a single user message and return the reply text.

        Raises:
            UpstreamAuthError: The provider rejected the API key (401).
            UpstreamRateLimitError: The provider is throttling (429).
            UpstreamBadRequestError: Any other 4xx from the provider.
            UpstreamServiceError: 5xx, timeout, network failure or an
                unreadable response envelope.
        """
        url = f"{self.base_url}/chat/completions"
        try:
            response = await self.http_client.post(
                url, json=self._payload(prompt, model), headers=self._headers(api_key)
            )
        except httpx.TimeoutException as exc:
            logger.error("Upstream request timed out: %s", exc)
            raise UpstreamServiceError("timeout") from exc
        except httpx.RequestError as exc:
            logger.error("Upstream request failed: %s", exc)
            raise UpstreamServiceError("network_error") from exc

        if response.is_error:
            logger.warning(
                "Upstream returned %s for model %s: %s",
                response.status_code,
                model,
                response.text[:500],
            )
            raise map_upstream_error(response)

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.error("Unreadable upstream response: %s", response.text[:500])
            raise UpstreamServiceError("malformed_response") from exc

        if content is not None and not isinstance(content, str):
            logger.error("Upstream message content is %s, not text", type(content).__name__)
            raise UpstreamServiceError("malformed_response")
        return content
