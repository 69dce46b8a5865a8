from __future__ import annotations

import time
from typing import Any, AsyncGenerator
from uuid import uuid4

from loguru import logger

from querylens.agents.evidence_gatherer import EvidenceGatherer
from querylens.agents.format_selector import FormatSelector
from querylens.agents.query_analyzer import QueryAnalyzer
from querylens.agents.relevance_filter import RelevanceFilter
from querylens.agents.synthesizer import Synthesizer
from querylens.llm_client import LanguageModelGateway, get_gateway
from querylens.models.events import EventType, SSEEvent
from querylens.models.research import ResearchQuery
from querylens.services import logger as log_service
from querylens.services import streaming


class ResearchOrchestrator:
    """Runs the research pipeline for one query.

    Flow:
      1. Decompose the query into sub-questions
      2. Research each sub-question in order (search, scrape, model answer)
      3. Score every finding for relevance to the original query
      4. Pick a presentation format over the relevant findings (optional)
      5. Synthesize the final answer

    `research` yields progress events for the caller to relay; the last event
    is `complete` carrying the full result. Stage failures propagate.
    """

    def __init__(self, gateway: LanguageModelGateway | None = None):
        self._gateway = gateway

    async def research(self, query: ResearchQuery) -> AsyncGenerator[SSEEvent, None]:
        run_id = uuid4().hex[:12]
        started = time.monotonic()
        # Resolving the gateway validates configuration before any network call.
        gateway = self._gateway or get_gateway()

        logger.info(
            f"Starting research {run_id}: {query.text[:100]} "
            f"(threshold={query.relevance_threshold}, formatting={query.enable_formatting})"
        )
        analyzer = QueryAnalyzer(gateway)
        gatherer = EvidenceGatherer(gateway)
        relevance = RelevanceFilter(gateway)
        selector = FormatSelector(gateway)
        synthesizer = Synthesizer(gateway)

        yield streaming.activity("Analyzing your query...")
        analysis = await analyzer.analyze(query.text)
        log_service.log_research_step(
            run_id, "analysis", "completed", {"sub_questions": len(analysis.sub_questions)}
        )
        yield streaming.activity(f"Generated {len(analysis.sub_questions)} research questions")
        yield streaming.analysis(analysis)

        async for event in gatherer.run(analysis.sub_questions):
            yield event
        findings = gatherer.findings
        log_service.log_research_step(run_id, "gathering", "completed", {"findings": len(findings)})

        yield streaming.activity("Filtering results for relevance...")
        filtered = await relevance.filter(findings, query.text, query.relevance_threshold)
        relevant = [f for f in filtered if f.is_relevant]
        yield streaming.activity(
            f"Found {len(relevant)} relevant findings, "
            f"filtered out {len(filtered) - len(relevant)} less relevant ones"
        )

        if query.enable_formatting and relevant:
            yield streaming.activity("Detecting optimal formatting style...")
            format_metadata = await selector.detect(relevant, query.text)
            logger.info(f"Detected optimal format: {format_metadata.format}")
            yield streaming.activity(
                f"Using {format_metadata.format.value} format for enhanced presentation"
            )
            synthesis = await synthesizer.synthesize_enhanced(query.text, filtered, format_metadata)
        else:
            yield streaming.activity("Synthesizing research findings...")
            synthesis = await synthesizer.synthesize_plain(query.text, relevant)

        runtime_ms = int((time.monotonic() - started) * 1000)
        log_service.log_research_step(
            run_id,
            "synthesis",
            "completed",
            {"confidence": synthesis.confidence.value, "runtime_ms": runtime_ms},
        )
        logger.info(f"Research {run_id} complete in {runtime_ms}ms")

        yield streaming.activity("Research completed successfully!")
        yield streaming.complete(
            {
                "analysis": analysis.to_dict(),
                "findings": [f.to_dict() for f in filtered],
                "synthesis": synthesis.to_dict(),
                "timestamp": streaming.timestamp(),
            }
        )

    async def run(self, query: ResearchQuery) -> dict[str, Any]:
        """Drain the pipeline and return the `complete` payload."""
        result: dict[str, Any] | None = None
        async for event in self.research(query):
            if event.event == EventType.COMPLETE:
                result = event.data
        if result is None:
            raise RuntimeError("Research pipeline ended without a result")
        return result
