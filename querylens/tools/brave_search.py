from __future__ import annotations

from typing import Any

import httpx

from querylens.config import settings
from querylens.models.research import SearchResult

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def decode_results(payload: Any, *, max_results: int) -> list[SearchResult]:
    """Map a Brave response body to SearchResults; malformed items get empty fields."""
    web = payload.get("web") if isinstance(payload, dict) else None
    raw_results = web.get("results") if isinstance(web, dict) else None
    if not isinstance(raw_results, list):
        return []

    mapped: list[SearchResult] = []
    for item in raw_results[:max_results]:
        if not isinstance(item, dict):
            item = {}
        mapped.append(
            SearchResult(
                title=_as_text(item.get("title")),
                link=_as_text(item.get("url")),
                snippet=_as_text(item.get("description")),
                position=len(mapped) + 1,
            )
        )
    return mapped


async def search(query: str, *, max_results: int = 5) -> list[SearchResult]:
    """Execute a Brave web search and normalize results."""
    if not settings.brave_api_key:
        raise RuntimeError("BRAVE_API_KEY is not configured")

    params: dict[str, Any] = {
        "q": query,
        "count": max_results,
        "offset": 0,
        "mkt": "en-US",
        "safesearch": "moderate",
        "text_decorations": "false",
    }

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.get(
            BRAVE_SEARCH_URL,
            params=params,
            headers={
                "Accept": "application/json",
                "Accept-Encoding": "gzip",
                "X-Subscription-Token": settings.brave_api_key,
            },
        )
        response.raise_for_status()
        payload = response.json()

    return decode_results(payload, max_results=max_results)
