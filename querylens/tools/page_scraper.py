from __future__ import annotations

import asyncio

import httpx
from loguru import logger

from querylens.config import settings
from querylens.models.research import ScrapedPage
from querylens.tools import content_extractor, web_utils

ERROR_TITLE = "Error"


async def fetch_html(url: str, *, timeout: float) -> str:
    # httpx timeouts apply per phase; the outer deadline bounds the whole request.
    async with asyncio.timeout(timeout):
        return await _get_text(url, timeout=timeout)


async def _get_text(url: str, *, timeout: float) -> str:
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        response = await client.get(
            url,
            headers={"User-Agent": settings.scrape_user_agent},
        )
        response.raise_for_status()
        return response.text


async def scrape(
    url: str,
    *,
    timeout: float | None = None,
    max_chars: int | None = None,
) -> ScrapedPage:
    """Fetch a page and extract its main text.

    Never raises: transport, timeout and parse failures are recorded on the
    returned page's `error` field with empty content.
    """
    timeout = timeout if timeout is not None else settings.scrape_timeout_seconds
    max_chars = max_chars if max_chars is not None else settings.scrape_max_chars

    if not web_utils.is_valid_url(url):
        return ScrapedPage(url=url, title=ERROR_TITLE, content="", error=f"Invalid URL: {url}")

    try:
        html = await fetch_html(url, timeout=timeout)
        extracted = content_extractor.extract_page(html, max_chars=max_chars)
    except (httpx.TimeoutException, TimeoutError) as e:
        logger.warning(f"Scrape timed out after {timeout}s for {url}")
        return ScrapedPage(
            url=url,
            title=ERROR_TITLE,
            content="",
            error=str(e) or f"Timed out after {timeout}s",
        )
    except Exception as e:
        logger.warning(f"Scrape failed for {url}: {e}")
        return ScrapedPage(
            url=url,
            title=ERROR_TITLE,
            content="",
            error=str(e) or type(e).__name__,
        )

    logger.debug(
        f"Scraped {url}: {extracted.raw_length} raw chars -> {len(extracted.text)} chars via {extracted.selector}"
    )
    return ScrapedPage(url=url, title=extracted.title, content=extracted.text)
