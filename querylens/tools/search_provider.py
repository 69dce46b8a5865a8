from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Protocol, Sequence

from loguru import logger

from querylens.config import settings
from querylens.models.research import SearchResult
from querylens.tools import brave_search


class SearchFallback(Protocol):
    name: str

    def fallback(self, query: str) -> list[SearchResult]: ...


class NoResultsFallback:
    """Fallback that yields nothing; callers then rely on model knowledge."""

    name = "none"

    def fallback(self, query: str) -> list[SearchResult]:
        return []


class KeywordSourceFallback:
    """Serve a static URL list for the first keyword found in the query."""

    name = "keyword_sources"

    def __init__(self, sources: Mapping[str, Sequence[str]]):
        self.sources = {k.lower().strip(): list(v) for k, v in sources.items() if k.strip()}

    def fallback(self, query: str) -> list[SearchResult]:
        lowered = query.lower()
        for keyword, urls in self.sources.items():
            if keyword not in lowered:
                continue
            return [
                SearchResult(
                    title=f"{keyword.title()} reference - {idx}",
                    link=url,
                    snippet=f"Reference material about {keyword} related to: {query}",
                    position=idx,
                )
                for idx, url in enumerate(urls, start=1)
            ]
        return []


@dataclass
class SearchResponse:
    results: list[SearchResult]
    provider: str
    fallback_reason: str | None = None


def default_fallback() -> SearchFallback:
    if settings.fallback_keyword_sources:
        return KeywordSourceFallback(settings.fallback_keyword_sources)
    return NoResultsFallback()


def _run_fallback(
    fallback: SearchFallback, query: str, max_results: int, reason: str
) -> SearchResponse:
    try:
        results = fallback.fallback(query)[:max_results]
    except Exception as e:
        logger.warning(f"Search fallback {fallback.name} failed: {e}")
        results = []
    logger.info(f"Search fallback {fallback.name} -> {len(results)} results ({reason})")
    return SearchResponse(results=results, provider=fallback.name, fallback_reason=reason)


async def search(
    query: str,
    *,
    max_results: int | None = None,
    fallback: SearchFallback | None = None,
) -> SearchResponse:
    """Search the web; any provider failure degrades to the fallback strategy."""
    limit = max_results if max_results is not None else settings.search_max_results
    strategy = fallback or default_fallback()

    if not settings.brave_api_key:
        logger.warning("BRAVE_API_KEY not configured, using fallback search method")
        return _run_fallback(strategy, query, limit, "BRAVE_API_KEY not configured")

    try:
        results = await brave_search.search(query, max_results=limit)
    except Exception as e:
        logger.warning(f"Brave search failed for '{query[:60]}': {e}")
        return _run_fallback(strategy, query, limit, str(e) or type(e).__name__)

    return SearchResponse(results=results, provider="brave")
