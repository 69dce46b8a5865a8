from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


DEFAULT_RELEVANCE_THRESHOLD = 70


@dataclass(frozen=True, slots=True)
class ResearchQuery:
    text: str
    relevance_threshold: int = DEFAULT_RELEVANCE_THRESHOLD
    enable_formatting: bool = True


@dataclass(slots=True)
class QueryAnalysis:
    original_query: str
    sub_questions: list[str]
    analysis_method: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalQuery": self.original_query,
            "subQuestions": list(self.sub_questions),
            "analysisMethod": self.analysis_method,
        }


@dataclass(slots=True)
class SearchResult:
    title: str
    link: str
    snippet: str
    position: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "link": self.link,
            "snippet": self.snippet,
            "position": self.position,
        }


@dataclass(slots=True)
class ScrapedPage:
    url: str
    title: str
    content: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.content)


@dataclass(frozen=True, slots=True)
class SourceRef:
    title: str
    url: str

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "url": self.url}


class FindingMethod(StrEnum):
    WEB = "web+scrape+LLM"
    LLM_ONLY = "LLM-only"


@dataclass(frozen=True, slots=True)
class Finding:
    question: str
    answer: str
    sources: tuple[SourceRef, ...]
    scraped_sources: int
    method: FindingMethod

    def to_dict(self) -> dict[str, Any]:
        return {
            "question": self.question,
            "answer": self.answer,
            "sources": [s.to_dict() for s in self.sources],
            "scrapedSources": self.scraped_sources,
            "method": self.method.value,
        }


@dataclass(frozen=True, slots=True)
class RelevanceScore:
    score: int
    reasoning: str

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "reasoning": self.reasoning}


@dataclass(frozen=True, slots=True)
class FilteredFinding:
    finding: Finding
    relevance_score: RelevanceScore
    is_relevant: bool

    @classmethod
    def classify(
        cls, finding: Finding, relevance_score: RelevanceScore, threshold: int
    ) -> FilteredFinding:
        return cls(
            finding=finding,
            relevance_score=relevance_score,
            is_relevant=relevance_score.score >= threshold,
        )

    @property
    def question(self) -> str:
        return self.finding.question

    @property
    def answer(self) -> str:
        return self.finding.answer

    @property
    def sources(self) -> tuple[SourceRef, ...]:
        return self.finding.sources

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.finding.to_dict(),
            "relevanceScore": self.relevance_score.to_dict(),
            "isRelevant": self.is_relevant,
        }


class ResponseFormat(StrEnum):
    TABLE = "table"
    BULLETS = "bullets"
    MIXED = "mixed"
    NARRATIVE = "narrative"


@dataclass(frozen=True, slots=True)
class FormatMetadata:
    format: ResponseFormat = ResponseFormat.NARRATIVE
    has_comparisons: bool = False
    has_lists: bool = False
    has_data: bool = False

    @classmethod
    def default(cls) -> FormatMetadata:
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format.value,
            "hasComparisons": self.has_comparisons,
            "hasLists": self.has_lists,
            "hasData": self.has_data,
        }


class Confidence(StrEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


def confidence_for(average_relevance: float) -> Confidence:
    if average_relevance >= 80:
        return Confidence.HIGH
    if average_relevance >= 60:
        return Confidence.MEDIUM
    return Confidence.LOW


@dataclass(slots=True)
class SynthesisResult:
    summary: str
    methodology: str
    confidence: Confidence
    total_sources: int
    total_scraped_sources: int
    source_breakdown: list[dict[str, Any]] = field(default_factory=list)
    # Only populated by the formatted (threshold-aware) synthesis path.
    relevant_findings: int | None = None
    filtered_out_findings: int | None = None
    average_relevance_score: int | None = None
    format_metadata: FormatMetadata | None = None
    filtered_findings: list[dict[str, Any]] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "summary": self.summary,
            "methodology": self.methodology,
            "confidence": self.confidence.value,
            "totalSources": self.total_sources,
            "totalScrapedSources": self.total_scraped_sources,
        }
        if self.relevant_findings is not None:
            data["relevantFindings"] = self.relevant_findings
        if self.filtered_out_findings is not None:
            data["filteredOutFindings"] = self.filtered_out_findings
        if self.average_relevance_score is not None:
            data["averageRelevanceScore"] = self.average_relevance_score
        if self.format_metadata is not None:
            data["formatMetadata"] = self.format_metadata.to_dict()
        data["sourceBreakdown"] = self.source_breakdown
        if self.filtered_findings is not None:
            data["filteredFindings"] = self.filtered_findings
        return data


@dataclass(slots=True)
class FollowupResult:
    question: str
    answer: str
    sources: list[SourceRef]
    context_used: list[str]
    method: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "question": self.question,
            "answer": self.answer,
            "sources": [s.to_dict() for s in self.sources],
            "contextUsed": list(self.context_used),
            "method": self.method,
        }
