from __future__ import annotations

from typing import AsyncGenerator

from loguru import logger

from querylens.agents.base import BaseAgent
from querylens.llm_client import LanguageModelGateway
from querylens.models.events import SSEEvent
from querylens.models.research import (
    Finding,
    FindingMethod,
    ScrapedPage,
    SearchResult,
    SourceRef,
)
from querylens.services import streaming
from querylens.tools import page_scraper, search_provider, web_utils

SCRAPE_TOP_N = 3
PROMPT_PAGE_CHARS = 1000
QUESTION_PREVIEW_CHARS = 60


class EvidenceGatherer(BaseAgent):
    """Researches each sub-question in order: search, scrape, then one model call.

    Sub-questions are processed strictly one after another, and so are the
    scrapes within a sub-question.
    """

    name = "evidence_gatherer"
    max_tokens = 1500
    temperature = 1.0

    def __init__(self, gateway: LanguageModelGateway | None = None):
        super().__init__(gateway)
        self.findings: list[Finding] = []

    def build_web_context(self, results: list[SearchResult]) -> str:
        return "\n\n".join(
            self.prompt("search_result", title=r.title, snippet=r.snippet, url=r.link)
            for r in results
        )

    def build_scraped_context(self, pages: list[ScrapedPage]) -> str:
        return "\n\n".join(
            self.prompt(
                "scraped_page",
                url=page.url,
                title=page.title,
                content=page.content[:PROMPT_PAGE_CHARS],
            )
            for page in pages
            if page.ok
        )

    def build_prompt(self, question: str, web_context: str, scraped_context: str) -> tuple[str, bool]:
        """Return (prompt, grounded)."""
        if web_context or scraped_context:
            return (
                self.prompt(
                    "grounded",
                    question=question,
                    web_context=web_context,
                    scraped_context=scraped_context,
                ),
                True,
            )
        return self.prompt("knowledge_only", question=question), False

    async def run(self, sub_questions: list[str]) -> AsyncGenerator[SSEEvent, None]:
        """Research every sub-question, yielding activity events as work progresses.

        Collected findings are available on `self.findings` once the generator
        is exhausted.
        """
        self.findings = []
        total = len(sub_questions)

        for idx, question in enumerate(sub_questions, start=1):
            logger.info(f"Researching {idx}/{total}: {question}")
            yield streaming.activity(
                f'Searching web for question {idx}/{total}: '
                f'"{web_utils.preview(question, QUESTION_PREVIEW_CHARS)}"'
            )

            response = await search_provider.search(question)
            results = response.results
            yield streaming.activity(f"Found {len(results)} web sources, scraping content...")

            pages: list[ScrapedPage] = []
            for result in results[:SCRAPE_TOP_N]:
                domain = web_utils.extract_domain(result.link)
                yield streaming.activity(f"Scraping {domain}...")
                page = await page_scraper.scrape(result.link)
                pages.append(page)
                if page.error is None:
                    yield streaming.activity(f"Scraped content from {domain}")
                else:
                    yield streaming.activity(f"Could not scrape {domain}, continuing")

            web_context = self.build_web_context(results)
            scraped_context = self.build_scraped_context(pages)
            prompt, grounded = self.build_prompt(question, web_context, scraped_context)

            yield streaming.activity(f"Analyzing findings for question {idx}/{total}...")
            answer = await self.generate(prompt, caller=f"{self.name}-question-{idx}")

            self.findings.append(
                Finding(
                    question=question,
                    answer=answer,
                    sources=tuple(SourceRef(title=r.title, url=r.link) for r in results),
                    scraped_sources=sum(1 for p in pages if p.error is None),
                    method=FindingMethod.WEB if grounded else FindingMethod.LLM_ONLY,
                )
            )
            yield streaming.activity(f"Completed research for question {idx}/{total}")

    async def gather(self, sub_questions: list[str]) -> list[Finding]:
        """Convenience: run without a progress consumer and return the findings."""
        async for _ in self.run(sub_questions):
            pass
        return list(self.findings)
