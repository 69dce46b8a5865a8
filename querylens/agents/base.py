from __future__ import annotations

from typing import Any

from querylens.llm_client import LanguageModelGateway, get_gateway
from querylens.services.prompt_store import render_prompt


class BaseAgent:
    """Base for pipeline stages that issue single-shot model calls.

    Subclasses set `name` (used as the caller tag in logs) and the generation
    bounds `max_tokens` / `temperature`.
    """

    name: str = "base"
    max_tokens: int = 1000
    temperature: float = 0.3

    def __init__(self, gateway: LanguageModelGateway | None = None):
        self._gateway = gateway

    @property
    def gateway(self) -> LanguageModelGateway:
        if self._gateway is None:
            self._gateway = get_gateway()
        return self._gateway

    def prompt(self, key: str, **values: Any) -> str:
        return render_prompt(f"{self.name}.{key}", **values)

    async def generate(
        self,
        prompt: str,
        *,
        caller: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        return await self.gateway.generate(
            prompt,
            max_tokens=max_tokens if max_tokens is not None else self.max_tokens,
            temperature=temperature if temperature is not None else self.temperature,
            caller=caller or self.name,
        )
