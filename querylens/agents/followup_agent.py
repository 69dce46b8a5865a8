from __future__ import annotations

from typing import Any, AsyncGenerator

from loguru import logger

from querylens.agents.base import BaseAgent
from querylens.config import settings
from querylens.models.events import EventType, SSEEvent
from querylens.models.research import FollowupResult, ScrapedPage, SourceRef
from querylens.services import streaming
from querylens.tools import page_scraper, search_provider, web_utils
from querylens.tools.search_provider import NoResultsFallback

SCRAPE_TOP_N = 2
CONTEXT_PREVIEW_CHARS = 200
QUESTION_PREVIEW_CHARS = 50

METHOD_WITH_WEB = "Context + Web research + LLM analysis"
METHOD_CONTEXT_ONLY = "Context + LLM analysis"

# Questions mentioning any of these get fresh web evidence on top of the context.
WEB_RESEARCH_KEYWORDS = (
    "latest",
    "recent",
    "current",
    "new",
    "update",
    "today",
    "now",
    "price",
    "cost",
    "market",
    "stock",
    "news",
    "development",
)


def needs_web_research(question: str) -> bool:
    lowered = question.lower()
    return any(keyword in lowered for keyword in WEB_RESEARCH_KEYWORDS)


class FollowupAgent(BaseAgent):
    """Answers a follow-up question from prior research context.

    Time-sensitive questions additionally get a small search + scrape pass;
    everything else is answered from the supplied context alone.
    """

    name = "followup"
    max_tokens = 1500
    temperature = 0.3

    def build_web_context(self, pages: list[ScrapedPage]) -> str:
        return "\n\n".join(
            self.prompt("web_page", url=page.url, content=page.content)
            for page in pages
            if page.ok
        )

    async def run(self, question: str, context: str) -> AsyncGenerator[SSEEvent, None]:
        gateway = self.gateway

        yield streaming.activity(
            f'Processing follow-up question: "{web_utils.preview(question, QUESTION_PREVIEW_CHARS)}"'
        )

        sources: list[SourceRef] = []
        web_context = ""
        use_web = needs_web_research(question)

        if use_web:
            yield streaming.activity("Searching for current information...")
            response = await search_provider.search(
                question,
                max_results=settings.followup_search_max_results,
                fallback=NoResultsFallback(),
            )
            results = response.results
            sources = [SourceRef(title=r.title, url=r.link) for r in results]

            pages: list[ScrapedPage] = []
            for result in results[:SCRAPE_TOP_N]:
                yield streaming.activity(f"Scraping {web_utils.extract_domain(result.link)}...")
                pages.append(
                    await page_scraper.scrape(
                        result.link,
                        timeout=settings.followup_scrape_timeout_seconds,
                        max_chars=settings.followup_scrape_max_chars,
                    )
                )
            web_context = self.build_web_context(pages)
            logger.info(
                f"Follow-up web research: {len(results)} results, "
                f"{sum(1 for p in pages if p.ok)} pages scraped"
            )

        yield streaming.activity("Generating contextual answer...")
        web_section = self.prompt("web_section", web_context=web_context) if web_context else ""
        answer = await gateway.generate(
            self.prompt("answer", context=context, web_section=web_section, question=question),
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            caller=self.name,
        )

        result = FollowupResult(
            question=question,
            answer=answer,
            sources=sources,
            context_used=[context[:CONTEXT_PREVIEW_CHARS] + "..."],
            method=METHOD_WITH_WEB if web_context else METHOD_CONTEXT_ONLY,
        )
        yield streaming.activity("Follow-up answer ready")
        yield streaming.complete({**result.to_dict(), "timestamp": streaming.timestamp()})

    async def answer(self, question: str, context: str) -> dict[str, Any]:
        """Drain `run` and return the `complete` payload."""
        payload: dict[str, Any] | None = None
        async for event in self.run(question, context):
            if event.event == EventType.COMPLETE:
                payload = event.data
        if payload is None:
            raise RuntimeError("Follow-up pipeline ended without a result")
        return payload
