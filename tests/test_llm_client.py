"""Tests for the language model gateway."""
from __future__ import annotations

import sys
import types
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from querylens import llm_client
from querylens.llm_client import (
    AnthropicCompletions,
    ConfigurationError,
    LanguageModelGateway,
    OpenRouterCompletions,
)

from conftest import ScriptedBackend, make_gateway


class ProviderError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class TestGatewayConfiguration:
    def test_missing_anthropic_key_raises(self):
        with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY not configured"):
            LanguageModelGateway(provider="anthropic", api_key="", model="m", backend=MagicMock())

    def test_missing_openrouter_key_raises(self):
        with pytest.raises(ConfigurationError, match="OPENROUTER_API_KEY not configured"):
            LanguageModelGateway(provider="openrouter", api_key="", model="m", backend=MagicMock())

    def test_unknown_provider_raises(self):
        with pytest.raises(ConfigurationError, match="Unsupported LLM_PROVIDER"):
            LanguageModelGateway(provider="bedrock", api_key="k", model="m", backend=MagicMock())

    def test_get_gateway_is_lazy_singleton(self):
        with patch("querylens.llm_client.settings") as mock_settings:
            mock_settings.llm_provider = "anthropic"
            mock_settings.llm_api_key = "sk-ant-123"
            mock_settings.default_model = "claude-test"
            mock_settings.openrouter_base_url = ""
            mock_settings.llm_calls_per_second = 0

            anthropic_module = types.ModuleType("anthropic")
            anthropic_module.AsyncAnthropic = MagicMock()
            with patch.dict(sys.modules, {"anthropic": anthropic_module}):
                first = llm_client.get_gateway()
                second = llm_client.get_gateway()

        assert first is second
        assert first.model == "claude-test"
        anthropic_module.AsyncAnthropic.assert_called_once_with(api_key="sk-ant-123")

    def test_get_gateway_raises_without_credential(self):
        with patch("querylens.llm_client.settings") as mock_settings:
            mock_settings.llm_provider = "anthropic"
            mock_settings.llm_api_key = ""
            mock_settings.default_model = "claude-test"
            mock_settings.openrouter_base_url = ""
            mock_settings.llm_calls_per_second = 4

            with pytest.raises(ConfigurationError):
                llm_client.get_gateway()

    def test_openrouter_backend_uses_base_url(self):
        openai_module = types.ModuleType("openai")
        openai_module.AsyncOpenAI = MagicMock()
        with patch.dict(sys.modules, {"openai": openai_module}):
            OpenRouterCompletions.from_settings("sk-or-key", "https://openrouter.ai/api/v1")

        openai_module.AsyncOpenAI.assert_called_once_with(
            api_key="sk-or-key",
            base_url="https://openrouter.ai/api/v1",
        )


class TestGenerate:
    @pytest.mark.asyncio
    async def test_generate_passes_bounds_and_returns_text(self):
        gateway = make_gateway(lambda prompt: f"echo: {prompt}")

        text = await gateway.generate("hello", max_tokens=300, temperature=0.1, caller="test")

        assert text == "echo: hello"
        call = gateway._backend.calls[0]
        assert call["max_tokens"] == 300
        assert call["temperature"] == 0.1
        assert call["model"] == "test-model"

    @pytest.mark.asyncio
    async def test_generate_returns_empty_text_as_is(self):
        gateway = make_gateway(lambda prompt: "")
        assert await gateway.generate("x", max_tokens=10, temperature=0.0, caller="test") == ""

    @pytest.mark.asyncio
    async def test_generate_acquires_rate_limiter(self):
        limiter = MagicMock()
        limiter.acquire = AsyncMock(return_value=0.0)
        gateway = LanguageModelGateway(
            provider="anthropic",
            api_key="sk-ant-key",
            model="m",
            rate_limiter=limiter,
            backend=ScriptedBackend(lambda prompt: "ok"),
        )

        await gateway.generate("a", max_tokens=10, temperature=0.0, caller="test")
        await gateway.generate("b", max_tokens=10, temperature=0.0, caller="test")

        assert limiter.acquire.await_count == 2

    @pytest.mark.asyncio
    async def test_auth_failure_is_logged_and_propagated(self):
        backend = MagicMock()
        backend.complete = AsyncMock(side_effect=ProviderError("invalid x-api-key", 401))
        gateway = LanguageModelGateway(
            provider="anthropic", api_key="sk-ant-abcdefghijk", model="m", backend=backend
        )

        with (
            patch("querylens.llm_client.log_service.log_auth_failure") as log_auth,
            patch("querylens.llm_client.log_service.log_llm_call") as log_call,
        ):
            with pytest.raises(ProviderError):
                await gateway.generate("x", max_tokens=10, temperature=0.0, caller="relevance_filter")

        log_auth.assert_called_once_with(
            "relevance_filter",
            provider="anthropic",
            credential_present=True,
            credential_prefix="sk-ant-abc",
        )
        assert log_call.call_args.kwargs["status"] == "error"

    @pytest.mark.asyncio
    async def test_other_failures_skip_auth_diagnostics(self):
        backend = MagicMock()
        backend.complete = AsyncMock(side_effect=ProviderError("overloaded", 529))
        gateway = LanguageModelGateway(provider="anthropic", api_key="k", model="m", backend=backend)

        with patch("querylens.llm_client.log_service.log_auth_failure") as log_auth:
            with pytest.raises(ProviderError, match="overloaded"):
                await gateway.generate("x", max_tokens=10, temperature=0.0, caller="test")

        log_auth.assert_not_called()


class TestBackends:
    @pytest.mark.asyncio
    async def test_anthropic_backend_takes_first_text_block(self):
        response = SimpleNamespace(
            content=[
                SimpleNamespace(type="thinking", text="hidden"),
                SimpleNamespace(type="text", text="visible"),
            ],
            usage=SimpleNamespace(input_tokens=12, output_tokens=3),
        )
        client = MagicMock()
        client.messages.create = AsyncMock(return_value=response)

        completion = await AnthropicCompletions(client).complete(
            model="m", prompt="p", max_tokens=100, temperature=0.3
        )

        assert completion.text == "visible"
        assert completion.usage.input_tokens == 12
        kwargs = client.messages.create.await_args.kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "p"}]
        assert kwargs["max_tokens"] == 100

    @pytest.mark.asyncio
    async def test_openrouter_backend_reads_choice_content(self):
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="answer"))],
            usage=SimpleNamespace(prompt_tokens=7, completion_tokens=2),
        )
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=response)

        completion = await OpenRouterCompletions(client).complete(
            model="m", prompt="p", max_tokens=50, temperature=0.2
        )

        assert completion.text == "answer"
        assert completion.usage.output_tokens == 2
