from __future__ import annotations

from querylens.agents.base import BaseAgent
from querylens.models.research import QueryAnalysis


def split_sub_questions(text: str) -> list[str]:
    """One sub-question per non-blank line; the count is not validated."""
    return [line.strip() for line in text.splitlines() if line.strip()]


class QueryAnalyzer(BaseAgent):
    """Decomposes the original query into ordered sub-questions."""

    name = "query_analyzer"
    max_tokens = 1000
    temperature = 0.3

    async def analyze(self, query: str) -> QueryAnalysis:
        response = await self.generate(self.prompt("decompose", query=query))
        return QueryAnalysis(
            original_query=query,
            sub_questions=split_sub_questions(response),
            analysis_method=f"{self.gateway.model} decomposition",
        )
