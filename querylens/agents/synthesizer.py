from __future__ import annotations

import math
from typing import Any, Sequence

from querylens.agents.base import BaseAgent
from querylens.models.research import (
    Confidence,
    FilteredFinding,
    FormatMetadata,
    SynthesisResult,
    confidence_for,
)

ENHANCED_MAX_TOKENS = 2500
PLAIN_MAX_TOKENS = 2000


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def average_relevance(findings: Sequence[FilteredFinding]) -> float:
    if not findings:
        return 0.0
    return sum(f.relevance_score.score for f in findings) / len(findings)


class Synthesizer(BaseAgent):
    """Combines findings into one answer, with or without format instructions."""

    name = "synthesizer"
    temperature = 0.2

    def _source_titles(self, finding: FilteredFinding) -> str:
        return ", ".join(s.title for s in finding.sources)

    def format_instructions(self, metadata: FormatMetadata) -> str:
        return self.prompt(f"format_instructions.{metadata.format.value}")

    def feature_guidelines(self, metadata: FormatMetadata) -> str:
        keys = []
        if metadata.has_comparisons:
            keys.append("comparisons")
        if metadata.has_lists:
            keys.append("lists")
        if metadata.has_data:
            keys.append("data")
        return "\n".join(self.prompt(f"feature_guidelines.{key}") for key in keys)

    @staticmethod
    def _breakdown(finding: FilteredFinding, *, with_score: bool) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "question": finding.question,
            "sourceCount": len(finding.sources),
            "sources": [s.to_dict() for s in finding.sources],
        }
        if with_score:
            entry["relevanceScore"] = finding.relevance_score.score
        return entry

    async def synthesize_enhanced(
        self,
        original_query: str,
        filtered_findings: list[FilteredFinding],
        format_metadata: FormatMetadata,
    ) -> SynthesisResult:
        relevant = [f for f in filtered_findings if f.is_relevant]
        filtered_out = [f for f in filtered_findings if not f.is_relevant]

        combined = "\n\n".join(
            self.prompt(
                "enhanced_finding",
                question=f.question,
                answer=f.answer,
                source_titles=self._source_titles(f),
                score=f.relevance_score.score,
            )
            for f in relevant
        )
        summary = await self.generate(
            self.prompt(
                "enhanced",
                original_query=original_query,
                relevant_count=len(relevant),
                combined_findings=combined,
                format_instructions=self.format_instructions(format_metadata),
                feature_guidelines=self.feature_guidelines(format_metadata),
            ),
            caller=f"{self.name}-enhanced",
            max_tokens=ENHANCED_MAX_TOKENS,
        )

        average = average_relevance(relevant)
        return SynthesisResult(
            summary=summary,
            methodology=(
                f"{self.gateway.model} analysis with relevance filtering and structured formatting"
            ),
            confidence=confidence_for(average),
            total_sources=sum(len(f.sources) for f in relevant),
            total_scraped_sources=sum(f.finding.scraped_sources for f in relevant),
            relevant_findings=len(relevant),
            filtered_out_findings=len(filtered_out),
            average_relevance_score=round_half_up(average),
            format_metadata=format_metadata,
            source_breakdown=[self._breakdown(f, with_score=True) for f in relevant],
            filtered_findings=[
                {
                    "question": f.question,
                    "relevanceScore": f.relevance_score.score,
                    "reasoning": f.relevance_score.reasoning,
                }
                for f in filtered_out
            ],
        )

    async def synthesize_plain(
        self,
        original_query: str,
        relevant_findings: list[FilteredFinding],
    ) -> SynthesisResult:
        combined = "\n\n".join(
            self.prompt(
                "plain_finding",
                question=f.question,
                answer=f.answer,
                source_titles=self._source_titles(f),
            )
            for f in relevant_findings
        )
        summary = await self.generate(
            self.prompt("plain", original_query=original_query, combined_findings=combined),
            caller=f"{self.name}-plain",
            max_tokens=PLAIN_MAX_TOKENS,
        )
        return SynthesisResult(
            summary=summary,
            methodology=f"{self.gateway.model} analysis with web search and content scraping",
            confidence=Confidence.HIGH,
            total_sources=sum(len(f.sources) for f in relevant_findings),
            total_scraped_sources=sum(f.finding.scraped_sources for f in relevant_findings),
            source_breakdown=[self._breakdown(f, with_score=False) for f in relevant_findings],
        )
