from __future__ import annotations

import re

from loguru import logger

from querylens.agents.base import BaseAgent
from querylens.models.research import FilteredFinding, Finding, RelevanceScore

DEFAULT_SCORE = 50
MAX_SCORE = 100
DEFAULT_REASONING = "Unable to determine relevance"

_SCORE_RE = re.compile(r"Score:\s*(\d+)")
_REASONING_RE = re.compile(r"Reasoning:\s*([\s\S]+)")


def parse_relevance(text: str) -> RelevanceScore:
    """Decode a `Score:` / `Reasoning:` reply, defaulting whatever is missing.

    Scores outside 0-100 are treated as unparsable and get the default.
    """
    score_match = _SCORE_RE.search(text or "")
    reasoning_match = _REASONING_RE.search(text or "")
    reasoning = reasoning_match.group(1).strip() if reasoning_match else ""

    score = int(score_match.group(1)) if score_match else DEFAULT_SCORE
    if score > MAX_SCORE:
        logger.warning(f"Relevance score {score} out of range, using {DEFAULT_SCORE}")
        score = DEFAULT_SCORE
    return RelevanceScore(score=score, reasoning=reasoning or DEFAULT_REASONING)


class RelevanceFilter(BaseAgent):
    """Scores findings against the original query and marks them relevant or not."""

    name = "relevance_filter"
    max_tokens = 300
    temperature = 0.1

    async def score(self, finding: Finding, original_query: str) -> RelevanceScore:
        response = await self.generate(
            self.prompt(
                "score",
                original_query=original_query,
                question=finding.question,
                answer=finding.answer,
            )
        )
        return parse_relevance(response)

    async def filter(
        self,
        findings: list[Finding],
        original_query: str,
        threshold: int,
    ) -> list[FilteredFinding]:
        filtered: list[FilteredFinding] = []
        for finding in findings:
            relevance = await self.score(finding, original_query)
            filtered.append(FilteredFinding.classify(finding, relevance, threshold))

        relevant = sum(1 for f in filtered if f.is_relevant)
        logger.info(
            f"Filtered findings: {relevant} relevant, {len(filtered) - relevant} filtered out (threshold {threshold})"
        )
        return filtered
