from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from querylens.tools import brave_search, search_provider
from querylens.tools.search_provider import KeywordSourceFallback, NoResultsFallback

from conftest import make_results


@pytest.mark.asyncio
async def test_search_provider_uses_brave_when_configured():
    with (
        patch("querylens.tools.search_provider.settings") as mock_settings,
        patch(
            "querylens.tools.search_provider.brave_search.search",
            new=AsyncMock(return_value=make_results(2)),
        ) as brave,
    ):
        mock_settings.brave_api_key = "brave-key"
        mock_settings.search_max_results = 5
        mock_settings.fallback_keyword_sources = {}

        result = await search_provider.search("query")

    assert result.provider == "brave"
    assert result.fallback_reason is None
    assert [r.position for r in result.results] == [1, 2]
    assert brave.await_args.kwargs["max_results"] == 5


@pytest.mark.asyncio
async def test_search_provider_falls_back_without_key():
    with (
        patch("querylens.tools.search_provider.settings") as mock_settings,
        patch("querylens.tools.search_provider.brave_search.search", new=AsyncMock()) as brave,
    ):
        mock_settings.brave_api_key = ""
        mock_settings.search_max_results = 5

        result = await search_provider.search("query", fallback=NoResultsFallback())

    assert result.results == []
    assert result.provider == "none"
    assert result.fallback_reason == "BRAVE_API_KEY not configured"
    brave.assert_not_awaited()


@pytest.mark.asyncio
async def test_search_provider_falls_back_on_brave_error():
    fallback = KeywordSourceFallback({"solar": ["https://a.example.com", "https://b.example.com"]})
    with (
        patch("querylens.tools.search_provider.settings") as mock_settings,
        patch(
            "querylens.tools.search_provider.brave_search.search",
            new=AsyncMock(side_effect=RuntimeError("brave down")),
        ),
    ):
        mock_settings.brave_api_key = "brave-key"
        mock_settings.search_max_results = 5

        result = await search_provider.search("Solar panel costs", fallback=fallback)

    assert result.provider == "keyword_sources"
    assert "brave down" in (result.fallback_reason or "")
    assert [r.link for r in result.results] == ["https://a.example.com", "https://b.example.com"]
    assert [r.position for r in result.results] == [1, 2]
    assert result.results[0].title == "Solar reference - 1"


@pytest.mark.asyncio
async def test_search_provider_caps_fallback_results():
    fallback = KeywordSourceFallback({"wind": [f"https://w{i}.example.com" for i in range(6)]})
    with patch("querylens.tools.search_provider.settings") as mock_settings:
        mock_settings.brave_api_key = ""
        mock_settings.search_max_results = 5

        result = await search_provider.search("wind farms", max_results=3, fallback=fallback)

    assert len(result.results) == 3


def test_keyword_fallback_without_match_is_empty():
    fallback = KeywordSourceFallback({"solar": ["https://a.example.com"]})
    assert fallback.fallback("tidal energy") == []


def test_decode_results_assigns_positions_and_tolerates_bad_items():
    payload = {
        "web": {
            "results": [
                {"title": "A", "url": "https://a.com", "description": "da"},
                "junk",
                {"title": None, "url": "https://c.com"},
            ]
        }
    }
    results = brave_search.decode_results(payload, max_results=5)

    assert [r.position for r in results] == [1, 2, 3]
    assert results[0].snippet == "da"
    assert results[1].link == ""
    assert results[2].title == ""


def test_decode_results_handles_missing_web_section():
    assert brave_search.decode_results({"query": {}}, max_results=5) == []
    assert brave_search.decode_results(None, max_results=5) == []
