from __future__ import annotations

from typing import Callable

import pytest

from querylens import llm_client
from querylens.llm_client import Completion, LanguageModelGateway, Usage
from querylens.models.research import SearchResult


class ScriptedBackend:
    """Completion backend answering from a prompt -> text function."""

    def __init__(self, responder: Callable[[str], str]):
        self.responder = responder
        self.calls: list[dict] = []

    async def complete(self, *, model, prompt, max_tokens, temperature):
        self.calls.append(
            {"model": model, "prompt": prompt, "max_tokens": max_tokens, "temperature": temperature}
        )
        return Completion(text=self.responder(prompt), usage=Usage(input_tokens=10, output_tokens=5))


def research_responder(scores: list[int], fmt: str = "table") -> Callable[[str], str]:
    """Answer every pipeline stage; relevance scores are handed out in order."""
    remaining = list(scores)

    def respond(prompt: str) -> str:
        if "Break down the user's query" in prompt:
            return "\n".join(f"Sub-question {i}?" for i in range(1, len(scores) + 1))
        if "relevance evaluator" in prompt:
            return f"Score: {remaining.pop(0)}\nReasoning: scored by test"
        if "optimal presentation format" in prompt:
            return f"Format: {fmt}\nHasComparisons: true\nHasLists: false\nHasData: true"
        if "enhanced markdown formatting" in prompt:
            return "## Enhanced answer"
        if "You are a research synthesizer." in prompt:
            return "Plain answer"
        if "follow-up answer" in prompt:
            return "Follow-up answer"
        if "Research Question:" in prompt:
            return "Finding answer"
        return ""

    return respond


def make_gateway(responder: Callable[[str], str], model: str = "test-model") -> LanguageModelGateway:
    return LanguageModelGateway(
        provider="anthropic",
        api_key="sk-ant-test-key",
        model=model,
        backend=ScriptedBackend(responder),
    )


def make_results(count: int, prefix: str = "https://site") -> list[SearchResult]:
    return [
        SearchResult(
            title=f"Result {i}",
            link=f"{prefix}{i}.example.com/page",
            snippet=f"Snippet {i}",
            position=i,
        )
        for i in range(1, count + 1)
    ]


@pytest.fixture(autouse=True)
def _fresh_gateway():
    llm_client.reset_gateway()
    yield
    llm_client.reset_gateway()
