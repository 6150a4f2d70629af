"""
Tests for the inference agents.

These tests verify that:
1. The HTTP agent posts {messages, template} and maps the JSON reply
2. Network failures and error payloads surface as TransportError or an error field
3. The OpenAI agent prepends the system prompt and wraps client errors
4. The factory picks the hosted function when a URL is configured
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from openai import APIConnectionError

from app.agents.http_agent import HttpInferenceAgent
from app.agents.openai_agent import OpenAIInferenceAgent, get_inference_agent
from app.agents.prompts import APP_BUILDER_SYSTEM_PROMPT, build_chat_messages, build_system_prompt
from app.core.errors import TransportError

CONTEXT = [{"role": "user", "content": "Build a todo app"}]


def mock_async_client(client):
    """Stand-in for httpx.AsyncClient(...) used as an async context manager."""
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=client)
    context.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=context)


class TestPrompts:
    """Tests for system prompt building."""

    def test_without_template(self):
        assert build_system_prompt() == APP_BUILDER_SYSTEM_PROMPT

    def test_known_template(self):
        assert "Vite + React" in build_system_prompt("vite-react")

    def test_unknown_template_used_verbatim(self):
        assert build_system_prompt("a Svelte app").endswith("The project is a Svelte app.")

    def test_system_message_first(self):
        messages = build_chat_messages(CONTEXT, "next-js")

        assert messages[0]["role"] == "system"
        assert messages[1:] == CONTEXT


class TestHttpInferenceAgent:
    """Tests for HttpInferenceAgent."""

    @pytest.mark.asyncio
    async def test_posts_context_and_template(self):
        client = AsyncMock()
        client.post.return_value = httpx.Response(200, json={"response": "Here.", "html": "<p/>"})
        agent = HttpInferenceAgent(url="http://inference.local/generate", timeout=5)

        with patch("app.agents.http_agent.httpx.AsyncClient", mock_async_client(client)):
            reply = await agent.complete(CONTEXT, "vite-react")

        client.post.assert_awaited_once_with(
            "http://inference.local/generate",
            json={"messages": CONTEXT, "template": "vite-react"},
        )
        assert reply.response == "Here."
        assert reply.html == "<p/>"
        assert reply.error is None

    @pytest.mark.asyncio
    async def test_error_field_passed_through(self):
        client = AsyncMock()
        client.post.return_value = httpx.Response(200, json={"error": "quota exceeded"})
        agent = HttpInferenceAgent(url="http://inference.local/generate")

        with patch("app.agents.http_agent.httpx.AsyncClient", mock_async_client(client)):
            reply = await agent.complete(CONTEXT)

        assert reply.error == "quota exceeded"
        assert reply.response == ""

    @pytest.mark.asyncio
    async def test_http_status_without_error_field(self):
        client = AsyncMock()
        client.post.return_value = httpx.Response(503, json={})
        agent = HttpInferenceAgent(url="http://inference.local/generate")

        with patch("app.agents.http_agent.httpx.AsyncClient", mock_async_client(client)):
            reply = await agent.complete(CONTEXT)

        assert reply.error == "HTTP 503"

    @pytest.mark.asyncio
    async def test_network_failure(self):
        client = AsyncMock()
        client.post.side_effect = httpx.ConnectError("connection refused")
        agent = HttpInferenceAgent(url="http://inference.local/generate")

        with patch("app.agents.http_agent.httpx.AsyncClient", mock_async_client(client)):
            with pytest.raises(TransportError, match="connection refused"):
                await agent.complete(CONTEXT)

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        client = AsyncMock()
        client.post.return_value = httpx.Response(200, text="<html>gateway</html>")
        agent = HttpInferenceAgent(url="http://inference.local/generate")

        with patch("app.agents.http_agent.httpx.AsyncClient", mock_async_client(client)):
            with pytest.raises(TransportError):
                await agent.complete(CONTEXT)

    @pytest.mark.asyncio
    async def test_missing_url(self):
        agent = HttpInferenceAgent(url="")
        agent.url = ""

        with pytest.raises(TransportError):
            await agent.complete(CONTEXT)


class TestOpenAIInferenceAgent:
    """Tests for OpenAIInferenceAgent."""

    @pytest.fixture
    def agent(self):
        agent = OpenAIInferenceAgent()
        agent._client = MagicMock()
        agent._client.chat.completions.create = AsyncMock()
        return agent

    @pytest.mark.asyncio
    async def test_returns_content(self, agent):
        agent._client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="```css\nh1 {}\n```"))]
        )

        reply = await agent.complete(CONTEXT, "vite-react")

        assert reply.response == "```css\nh1 {}\n```"
        sent = agent._client.chat.completions.create.await_args.kwargs["messages"]
        assert sent[0]["role"] == "system"
        assert sent[1:] == CONTEXT

    @pytest.mark.asyncio
    async def test_empty_content_is_an_error(self, agent):
        agent._client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=None))]
        )

        reply = await agent.complete(CONTEXT)

        assert reply.error is not None

    @pytest.mark.asyncio
    async def test_client_error_wrapped(self, agent):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        agent._client.chat.completions.create.side_effect = APIConnectionError(request=request)

        with pytest.raises(TransportError):
            await agent.complete(CONTEXT)


class TestGetInferenceAgent:
    """Tests for the agent factory."""

    def test_hosted_function_when_url_set(self):
        with patch("app.core.config.settings.inference_url", "http://inference.local/generate"):
            assert isinstance(get_inference_agent(), HttpInferenceAgent)

    def test_openai_otherwise(self):
        with patch("app.core.config.settings.inference_url", ""):
            assert isinstance(get_inference_agent(), OpenAIInferenceAgent)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
