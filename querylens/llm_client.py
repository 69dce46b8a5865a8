"""Language model gateway for Anthropic and OpenRouter."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger

from querylens.config import settings
from querylens.services import logger as log_service
from querylens.services.rate_limiter import RateLimiter

SUPPORTED_PROVIDERS = ("anthropic", "openrouter")


class ConfigurationError(RuntimeError):
    """Raised when the gateway cannot be built from the current settings."""


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class Completion:
    text: str
    usage: Usage


class CompletionBackend(Protocol):
    async def complete(
        self, *, model: str, prompt: str, max_tokens: int, temperature: float
    ) -> Completion: ...


class AnthropicCompletions:
    """Single-turn completions through the Anthropic messages API."""

    def __init__(self, client: Any):
        self._client = client

    @classmethod
    def from_settings(cls, api_key: str) -> AnthropicCompletions:
        import anthropic

        return cls(anthropic.AsyncAnthropic(api_key=api_key))

    async def complete(
        self, *, model: str, prompt: str, max_tokens: int, temperature: float
    ) -> Completion:
        response = await self._client.messages.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        text = ""
        for block in getattr(response, "content", None) or []:
            if getattr(block, "type", None) == "text":
                text = getattr(block, "text", "") or ""
                break
        usage = getattr(response, "usage", None)
        return Completion(
            text=text,
            usage=Usage(
                input_tokens=getattr(usage, "input_tokens", 0) or 0,
                output_tokens=getattr(usage, "output_tokens", 0) or 0,
            ),
        )


class OpenRouterCompletions:
    """Single-turn completions through OpenRouter's OpenAI-compatible API."""

    def __init__(self, client: Any):
        self._client = client

    @classmethod
    def from_settings(cls, api_key: str, base_url: str) -> OpenRouterCompletions:
        from openai import AsyncOpenAI

        return cls(
            AsyncOpenAI(
                api_key=api_key,
                base_url=base_url.strip() or "https://openrouter.ai/api/v1",
            )
        )

    async def complete(
        self, *, model: str, prompt: str, max_tokens: int, temperature: float
    ) -> Completion:
        response = await self._client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        choices = getattr(response, "choices", None) or []
        text = ""
        if choices:
            message = getattr(choices[0], "message", None)
            text = getattr(message, "content", None) or ""
        usage = getattr(response, "usage", None)
        return Completion(
            text=text,
            usage=Usage(
                input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            ),
        )


def is_auth_failure(exc: BaseException) -> bool:
    status = getattr(exc, "status_code", None) or getattr(exc, "status", None)
    return status == 401


class LanguageModelGateway:
    """One blocking round trip to a text-generation model per `generate` call.

    Configuration is validated at construction so a missing credential fails
    before any network call. Every call is paced by the shared rate limiter.
    """

    def __init__(
        self,
        *,
        provider: str,
        api_key: str,
        model: str,
        base_url: str = "",
        rate_limiter: RateLimiter | None = None,
        backend: CompletionBackend | None = None,
    ):
        provider = (provider or "").lower().strip()
        if provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(
                f"Unsupported LLM_PROVIDER: {provider!r} (expected one of {', '.join(SUPPORTED_PROVIDERS)})"
            )
        if not api_key:
            env_name = "ANTHROPIC_API_KEY" if provider == "anthropic" else "OPENROUTER_API_KEY"
            raise ConfigurationError(f"{env_name} not configured")
        if not model:
            raise ConfigurationError("DEFAULT_MODEL not configured")

        self.provider = provider
        self.model = model
        self._api_key = api_key
        self.rate_limiter = rate_limiter or RateLimiter(0)
        if backend is not None:
            self._backend = backend
        elif provider == "anthropic":
            self._backend = AnthropicCompletions.from_settings(api_key)
        else:
            self._backend = OpenRouterCompletions.from_settings(api_key, base_url)

    @property
    def credential_prefix(self) -> str:
        return self._api_key[:10]

    async def generate(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        caller: str,
    ) -> str:
        await self.rate_limiter.acquire()

        t0 = time.monotonic()
        try:
            completion = await self._backend.complete(
                model=self.model,
                prompt=prompt,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except Exception as exc:
            elapsed_ms = int((time.monotonic() - t0) * 1000)
            if is_auth_failure(exc):
                log_service.log_auth_failure(
                    caller,
                    provider=self.provider,
                    credential_present=bool(self._api_key),
                    credential_prefix=self.credential_prefix,
                )
            log_service.log_llm_call(
                model=self.model,
                caller=caller,
                duration_ms=elapsed_ms,
                status="error",
                error=str(exc),
            )
            raise

        log_service.log_llm_call(
            model=self.model,
            caller=caller,
            input_tokens=completion.usage.input_tokens,
            output_tokens=completion.usage.output_tokens,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        if not completion.text:
            logger.warning(f"Model returned no text for {caller}")
        return completion.text


def build_gateway() -> LanguageModelGateway:
    """Build a gateway from settings; raises ConfigurationError when incomplete."""
    return LanguageModelGateway(
        provider=settings.llm_provider,
        api_key=settings.llm_api_key,
        model=settings.default_model,
        base_url=settings.openrouter_base_url,
        rate_limiter=RateLimiter(settings.llm_calls_per_second),
    )


_gateway: LanguageModelGateway | None = None


def get_gateway() -> LanguageModelGateway:
    """Get or create the process-wide gateway."""
    global _gateway
    if _gateway is None:
        _gateway = build_gateway()
    return _gateway


def reset_gateway() -> None:
    global _gateway
    _gateway = None
