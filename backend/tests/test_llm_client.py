"""
Tests for the completion API client.
"""
import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from mindchat.core.exceptions import LLMUpstreamError
from mindchat.services.llm_client import LLMClient

API_BASE = "http://llm.test/v1"


def make_client(**kwargs) -> LLMClient:
    return LLMClient(api_base=API_BASE, api_key="test-key", model="test-model", **kwargs)


def completion_response(content, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"choices": [{"message": {"role": "assistant", "content": content}}]},
        request=httpx.Request("POST", f"{API_BASE}/chat/completions"),
    )


def moderation_response(result: dict) -> httpx.Response:
    return httpx.Response(
        200,
        json={"id": "modr-1", "results": [result]},
        request=httpx.Request("POST", f"{API_BASE}/moderations"),
    )


SCHEMA = {"type": "object", "properties": {"mode": {"type": "string"}}}
MESSAGES = [{"role": "system", "content": "prompt"}, {"role": "user", "content": "Olá"}]


class TestChat:
    def test_chat_returns_content(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = completion_response("Olá!")

            content = asyncio.run(make_client().chat(MESSAGES))

        assert content == "Olá!"
        url = mock_post.call_args.args[0]
        payload = mock_post.call_args.kwargs["json"]
        headers = mock_post.call_args.kwargs["headers"]
        assert url == f"{API_BASE}/chat/completions"
        assert payload["model"] == "test-model"
        assert payload["stream"] is False
        assert "response_format" not in payload
        assert headers["Authorization"] == "Bearer test-key"

    def test_http_error_is_upstream_error(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = completion_response("x", status_code=500)

            with pytest.raises(LLMUpstreamError) as exc_info:
                asyncio.run(make_client().chat(MESSAGES))

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "AI service request failed: HTTP 500"

    def test_connection_error_is_upstream_error(self):
        with patch(
            "httpx.AsyncClient.post",
            new_callable=AsyncMock,
            side_effect=httpx.ConnectError("refused"),
        ):
            with pytest.raises(LLMUpstreamError):
                asyncio.run(make_client().chat(MESSAGES))

    def test_empty_content_is_upstream_error(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = completion_response(None)

            with pytest.raises(LLMUpstreamError) as exc_info:
                asyncio.run(make_client().chat(MESSAGES))

        assert exc_info.value.message == "AI service returned an empty response"


class TestStructuredResponse:
    def test_native_mode_sends_json_schema(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = completion_response('{"mode": "COUNCIL"}')

            raw = asyncio.run(
                make_client(structured_output=True).create_structured_response(
                    MESSAGES, response_format=SCHEMA, schema_name="council_response"
                )
            )

        assert raw == '{"mode": "COUNCIL"}'
        payload = mock_post.call_args.kwargs["json"]
        assert payload["response_format"] == {
            "type": "json_schema",
            "json_schema": {"name": "council_response", "schema": SCHEMA, "strict": True},
        }
        assert payload["messages"] == MESSAGES

    def test_fallback_mode_puts_schema_in_prompt(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = completion_response('{"mode": "COUNCIL"}')

            asyncio.run(
                make_client(structured_output=False).create_structured_response(
                    MESSAGES, response_format=SCHEMA
                )
            )

        payload = mock_post.call_args.kwargs["json"]
        assert "response_format" not in payload
        assert len(payload["messages"]) == 3
        assert payload["messages"][0]["role"] == "system"
        assert json.dumps(SCHEMA, ensure_ascii=False, indent=2) in payload["messages"][0]["content"]
        assert payload["messages"][1:] == MESSAGES

    def test_no_retry(self):
        with patch(
            "httpx.AsyncClient.post",
            new_callable=AsyncMock,
            side_effect=httpx.ReadTimeout("timed out"),
        ) as mock_post:
            with pytest.raises(LLMUpstreamError):
                asyncio.run(make_client().create_structured_response(MESSAGES, SCHEMA))

        assert mock_post.call_count == 1

    def test_stream_joins_chunks(self):
        async def fake_stream(self, messages, **kwargs):
            for chunk in ['{"mode": ', '"COUNCIL"}']:
                yield chunk

        with patch.object(LLMClient, "chat_stream", fake_stream), patch(
            "httpx.AsyncClient.post", new_callable=AsyncMock
        ) as mock_post:
            raw = asyncio.run(
                make_client(structured_output=True).create_structured_response(
                    MESSAGES, SCHEMA, stream=True
                )
            )

        assert raw == '{"mode": "COUNCIL"}'
        mock_post.assert_not_called()

    def test_empty_stream_is_upstream_error(self):
        async def fake_stream(self, messages, **kwargs):
            for chunk in []:
                yield chunk

        with patch.object(LLMClient, "chat_stream", fake_stream):
            with pytest.raises(LLMUpstreamError):
                asyncio.run(
                    make_client().create_structured_response(MESSAGES, SCHEMA, stream=True)
                )


class TestModeration:
    def test_flagged(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = moderation_response(
                {"flagged": True, "categories": {"violence": True, "hate": False}}
            )

            result = asyncio.run(make_client().moderate("texto"))

        assert result.flagged is True
        assert result.categories == {"violence": True, "hate": False}
        assert mock_post.call_args.args[0] == f"{API_BASE}/moderations"
        assert mock_post.call_args.kwargs["json"]["input"] == "texto"

    def test_not_flagged(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = moderation_response({"flagged": False, "categories": {}})

            result = asyncio.run(make_client().moderate("texto"))

        assert result.flagged is False

    @pytest.mark.parametrize(
        "failure",
        [
            httpx.ConnectError("refused"),
            httpx.ReadTimeout("timed out"),
        ],
    )
    def test_fails_open(self, failure):
        """An unreachable moderation API lets the message through."""
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock, side_effect=failure):
            result = asyncio.run(make_client().moderate("texto"))

        assert result.flagged is False
        assert result.categories == {}

    def test_fails_open_on_unexpected_body(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = httpx.Response(
                200,
                json={"unexpected": True},
                request=httpx.Request("POST", f"{API_BASE}/moderations"),
            )

            result = asyncio.run(make_client().moderate("texto"))

        assert result.flagged is False

    def test_disabled(self):
        with patch("mindchat.services.llm_client.settings.MODERATION_ENABLED", False), patch(
            "httpx.AsyncClient.post", new_callable=AsyncMock
        ) as mock_post:
            result = asyncio.run(make_client().moderate("texto"))

        assert result.flagged is False
        mock_post.assert_not_called()


class TestHealthCheck:
    def test_healthy(self):
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = httpx.Response(200, json={"data": []})

            result = asyncio.run(make_client().health_check())

        assert result["status"] == "healthy"
        assert result["model"] == "test-model"

    def test_unreachable(self):
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            side_effect=httpx.ConnectError("refused"),
        ):
            result = asyncio.run(make_client().health_check())

        assert result["status"] == "unreachable"
        assert "refused" in result["error"]
