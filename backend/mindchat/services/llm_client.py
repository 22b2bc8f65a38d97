"""
LLM Client - access to an OpenAI-compatible completion and moderation API.

Structured completions can be requested two ways, switched by the
LLM_STRUCTURED_OUTPUT setting:
- native: the schema is passed as ``response_format`` (json_schema mode)
- fallback: the schema is serialized into an extra system message and the
  model is trusted to comply

Either way the caller must run the returned text through the response
validator. This layer never retries.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import AsyncGenerator, Dict, List, Optional

import httpx

from mindchat.core.config import settings
from mindchat.core.exceptions import LLMUpstreamError

logger = logging.getLogger(__name__)


@dataclass
class ModerationResult:
    """Outcome of a moderation check."""

    flagged: bool = False
    categories: Dict[str, bool] = field(default_factory=dict)


class LLMClient:
    """
    Client for an OpenAI-compatible API (/chat/completions, /moderations).
    """

    def __init__(
        self,
        api_base: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        structured_output: Optional[bool] = None,
    ):
        self.api_base = (api_base or settings.LLM_API_BASE).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.LLM_API_KEY
        self.model = model or settings.LLM_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT
        self.max_tokens = max_tokens or settings.LLM_MAX_TOKENS
        self.temperature = temperature if temperature is not None else settings.LLM_TEMPERATURE
        self.structured_output = (
            structured_output if structured_output is not None else settings.LLM_STRUCTURED_OUTPUT
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def chat(
        self,
        messages: List[Dict],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
        response_format: Optional[Dict] = None,
    ) -> str:
        """
        Send a chat completion request and return the first choice's content.

        Raises:
            LLMUpstreamError: On transport errors, non-2xx answers or an
                answer without content
        """
        payload = {
            "model": model or self.model,
            "messages": messages,
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.max_tokens,
            "stream": False,
        }
        if response_format is not None:
            payload["response_format"] = response_format

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    f"{self.api_base}/chat/completions",
                    json=payload,
                    headers=self._headers(),
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Completion request rejected: HTTP {e.response.status_code} {e.response.text[:300]}"
            )
            raise LLMUpstreamError(f"AI service request failed: HTTP {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Completion request failed: {e!r}")
            raise LLMUpstreamError(f"AI service request failed: {e}")

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            logger.error("Completion response has no content")
            raise LLMUpstreamError("AI service returned an empty response")
        return content

    async def chat_stream(
        self,
        messages: List[Dict],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
    ) -> AsyncGenerator[str, None]:
        """
        Send a streaming chat completion request and yield content chunks.
        """
        payload = {
            "model": model or self.model,
            "messages": messages,
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.max_tokens,
            "stream": True,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                async with client.stream(
                    "POST",
                    f"{self.api_base}/chat/completions",
                    json=payload,
                    headers=self._headers(),
                ) as resp:
                    resp.raise_for_status()
                    async for line in resp.aiter_lines():
                        if not line.startswith("data: "):
                            continue
                        data_str = line[6:]
                        if data_str.strip() == "[DONE]":
                            break
                        try:
                            data = json.loads(data_str)
                        except json.JSONDecodeError:
                            continue
                        choices = data.get("choices") or [{}]
                        content = choices[0].get("delta", {}).get("content", "")
                        if content:
                            yield content
        except httpx.HTTPError as e:
            logger.error(f"Streaming completion request failed: {e!r}")
            raise LLMUpstreamError(f"AI service request failed: {e}")

    async def create_structured_response(
        self,
        messages: List[Dict],
        response_format: Dict,
        schema_name: str = "structured_response",
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
        stream: bool = False,
    ) -> str:
        """
        Request a completion constrained to ``response_format`` (a JSON schema).

        Args:
            messages: Chat messages (system prompt + user input)
            response_format: JSON schema the answer must follow
            schema_name: Name reported to the API in native mode
            stream: Read the answer as a stream and join the chunks

        Returns:
            Raw JSON text produced by the model (not yet validated)
        """
        if self.structured_output and not stream:
            return await self.chat(
                messages,
                temperature=temperature,
                max_tokens=max_tokens,
                model=model,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": schema_name,
                        "schema": response_format,
                        "strict": True,
                    },
                },
            )

        schema_text = json.dumps(response_format, ensure_ascii=False, indent=2)
        enhanced_messages = [
            {
                "role": "system",
                "content": f"You must respond with valid JSON matching this exact schema: {schema_text}",
            },
            *messages,
        ]
        if not stream:
            return await self.chat(
                enhanced_messages,
                temperature=temperature,
                max_tokens=max_tokens,
                model=model,
            )

        chunks = [
            chunk
            async for chunk in self.chat_stream(
                enhanced_messages,
                temperature=temperature,
                max_tokens=max_tokens,
                model=model,
            )
        ]
        content = "".join(chunks)
        if not content:
            raise LLMUpstreamError("AI service returned an empty response")
        return content

    async def moderate(self, text: str) -> ModerationResult:
        """
        Check text with the moderation endpoint.

        Fails open: any error is logged and reported as not flagged, so an
        outage of the moderation service never blocks the user.
        """
        if not settings.MODERATION_ENABLED:
            return ModerationResult()

        try:
            async with httpx.AsyncClient(timeout=settings.MODERATION_TIMEOUT) as client:
                resp = await client.post(
                    f"{self.api_base}/moderations",
                    json={"model": settings.MODERATION_MODEL, "input": text},
                    headers=self._headers(),
                )
                resp.raise_for_status()
                result = resp.json()["results"][0]
            return ModerationResult(
                flagged=bool(result.get("flagged", False)),
                categories=result.get("categories") or {},
            )
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning(f"Moderation check failed, allowing message: {e!r}")
            return ModerationResult()

    async def health_check(self) -> Dict:
        """
        Check if the completion API is reachable.

        Returns:
            Dict with 'status', 'model', 'api_base' and optional 'error' keys
        """
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                resp = await client.get(f"{self.api_base}/models", headers=self._headers())

            if resp.status_code == 200:
                return {
                    "status": "healthy",
                    "model": self.model,
                    "api_base": self.api_base,
                    "structured_output": self.structured_output,
                }
            return {
                "status": "unhealthy",
                "model": self.model,
                "error": f"HTTP {resp.status_code}",
            }
        except httpx.HTTPError as e:
            return {
                "status": "unreachable",
                "model": self.model,
                "api_base": self.api_base,
                "error": str(e),
            }


# Default client instance
_default_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get the default LLM client instance (singleton)."""
    global _default_client
    if _default_client is None:
        _default_client = LLMClient()
    return _default_client
