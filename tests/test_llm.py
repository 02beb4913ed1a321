"""Tests for LLM module."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from assistant_search.config import LLMSettings
from assistant_search.exceptions import ErrorCode, LLMError
from assistant_search.llm.client import OpenAICompatibleClient
from assistant_search.llm.models import Completion, Message, Role
from assistant_search.llm.prompts import QueryExpansionPrompt


def mock_http(content: str | None = "Response", **extra: object) -> AsyncMock:
    response = MagicMock()
    response.json.return_value = {
        "choices": [{"message": {"content": content}}],
        **extra,
    }
    response.raise_for_status = MagicMock()
    client = AsyncMock(spec=httpx.AsyncClient)
    client.post.return_value = response
    return client


def status_error(status: int) -> AsyncMock:
    response = MagicMock()
    response.status_code = status
    response.raise_for_status.side_effect = httpx.HTTPStatusError(
        "error",
        request=MagicMock(),
        response=response,
    )
    client = AsyncMock(spec=httpx.AsyncClient)
    client.post.return_value = response
    return client


class TestCompletion:
    """Tests for Completion model."""

    def test_lines(self) -> None:
        """Blank lines are dropped and the rest stripped."""
        completion = Completion(content="  one \n\n two\n", model="m")
        assert completion.lines() == ["one", "two"]

    def test_role_values(self) -> None:
        """Role enum has expected values."""
        assert Role.SYSTEM.value == "system"
        assert Role.USER.value == "user"
        assert Role.ASSISTANT.value == "assistant"


class TestOpenAICompatibleClient:
    """Tests for OpenAICompatibleClient."""

    def test_model_name(self) -> None:
        """Client returns configured model name."""
        client = OpenAICompatibleClient(settings=LLMSettings(model="gpt-4o-mini"))
        assert client.model_name == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_chat(self) -> None:
        """Client returns the first choice."""
        settings = LLMSettings(base_url="http://test/v1", model="test-model")
        http = mock_http("Generated", model="test-model", usage={"total_tokens": 30})

        client = OpenAICompatibleClient(settings=settings, client=http)
        result = await client.chat([Message(role=Role.USER, content="Hello")])

        assert result.content == "Generated"
        assert result.model == "test-model"
        assert result.total_tokens == 30
        assert http.post.call_args.args[0] == "http://test/v1/chat/completions"

    @pytest.mark.asyncio
    async def test_complete_with_system_prompt(self) -> None:
        """System and user messages are both sent."""
        http = mock_http()
        client = OpenAICompatibleClient(settings=LLMSettings(), client=http)

        await client.complete("Expand this", system_prompt="You expand queries.")

        messages = http.post.call_args.kwargs["json"]["messages"]
        assert [m["role"] for m in messages] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_zero_temperature_respected(self) -> None:
        """An explicit zero temperature is not replaced by the default."""
        http = mock_http()
        client = OpenAICompatibleClient(settings=LLMSettings(temperature=0.7), client=http)

        await client.complete("q", temperature=0.0)

        assert http.post.call_args.kwargs["json"]["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_auth_header(self) -> None:
        """A real API key is sent as a bearer token."""
        http = mock_http()
        client = OpenAICompatibleClient(settings=LLMSettings(api_key="sk-test"), client=http)

        await client.complete("q")

        assert http.post.call_args.kwargs["headers"] == {"Authorization": "Bearer sk-test"}

    @pytest.mark.asyncio
    async def test_null_content(self) -> None:
        """A null message content becomes an empty string."""
        client = OpenAICompatibleClient(settings=LLMSettings(), client=mock_http(None))
        result = await client.complete("q")
        assert result.content == ""

    @pytest.mark.asyncio
    async def test_timeout_error(self) -> None:
        """Timeout raises LLMError with correct code."""
        http = AsyncMock(spec=httpx.AsyncClient)
        http.post.side_effect = httpx.TimeoutException("Timeout")
        client = OpenAICompatibleClient(settings=LLMSettings(), client=http)

        with pytest.raises(LLMError) as exc_info:
            await client.complete("Hello")

        assert exc_info.value.code == ErrorCode.LLM_TIMEOUT

    @pytest.mark.asyncio
    async def test_rate_limit_error(self) -> None:
        """429 maps to the rate limit code."""
        client = OpenAICompatibleClient(settings=LLMSettings(), client=status_error(429))

        with pytest.raises(LLMError) as exc_info:
            await client.complete("Hello")

        assert exc_info.value.code == ErrorCode.LLM_RATE_LIMIT

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        """5xx maps to the service error code."""
        client = OpenAICompatibleClient(settings=LLMSettings(), client=status_error(503))

        with pytest.raises(LLMError) as exc_info:
            await client.complete("Hello")

        assert exc_info.value.code == ErrorCode.LLM_SERVICE_ERROR
        assert exc_info.value.details["status_code"] == 503

    @pytest.mark.asyncio
    async def test_invalid_response(self) -> None:
        """Missing choices raises LLMError."""
        response = MagicMock()
        response.json.return_value = {"choices": []}
        response.raise_for_status = MagicMock()
        http = AsyncMock(spec=httpx.AsyncClient)
        http.post.return_value = response
        client = OpenAICompatibleClient(settings=LLMSettings(), client=http)

        with pytest.raises(LLMError, match="Invalid response"):
            await client.complete("Hello")

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        """Client closes owned HTTP client."""
        http = AsyncMock(spec=httpx.AsyncClient)
        client = OpenAICompatibleClient(settings=LLMSettings(), client=http)
        client._owns_client = True

        await client.close()

        http.aclose.assert_called_once()


class TestQueryExpansionPrompt:
    """Tests for QueryExpansionPrompt."""

    def test_format(self) -> None:
        """Prompt embeds query, count, language and domain."""
        prompt = QueryExpansionPrompt().format(
            query="Hoe werkt de koppeling?", count=3, language="nl", domain="support"
        )

        assert "Genereer 3 alternatieve zoektermen" in prompt
        assert '"Hoe werkt de koppeling?"' in prompt
        assert "Taal: nl" in prompt
        assert "Domein: support" in prompt

    def test_custom_template(self) -> None:
        """A custom template replaces the default."""
        prompt = QueryExpansionPrompt("{query}|{count}").format(
            query="q", count=2, language="en", domain="general"
        )
        assert prompt == "q|2"
