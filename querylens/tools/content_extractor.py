from __future__ import annotations

from dataclasses import dataclass

from bs4 import BeautifulSoup

from querylens.tools.web_utils import collapse_whitespace

BOILERPLATE_TAGS = ("script", "style", "nav", "footer", "header", "aside")

CONTENT_SELECTORS = (
    "main",
    "article",
    ".content",
    ".main-content",
    ".post-content",
    ".entry-content",
    "#content",
    ".article-body",
)

UNTITLED = "No title"


@dataclass
class ExtractedContent:
    title: str
    text: str
    selector: str  # selector that matched, or "body"
    raw_length: int


def _extract_title(soup: BeautifulSoup) -> str:
    if soup.title:
        title = collapse_whitespace(soup.title.get_text())
        if title:
            return title
    h1 = soup.find("h1")
    if h1:
        title = collapse_whitespace(h1.get_text())
        if title:
            return title
    return UNTITLED


def _extract_main_text(soup: BeautifulSoup) -> tuple[str, str]:
    # The first selector with any match wins; an empty match falls back to body.
    for selector in CONTENT_SELECTORS:
        matches = soup.select(selector)
        if matches:
            text = " ".join(el.get_text(" ") for el in matches).strip()
            if text:
                return selector, text
            break

    body = soup.body or soup
    return "body", body.get_text(" ")


def extract_page(raw_html: str, *, max_chars: int) -> ExtractedContent:
    """Strip boilerplate from an HTML page and return its title and main text."""
    soup = BeautifulSoup(raw_html, "html.parser")
    for element in soup(list(BOILERPLATE_TAGS)):
        element.decompose()

    title = _extract_title(soup)
    selector, text = _extract_main_text(soup)
    text = collapse_whitespace(text)
    if max_chars > 0:
        text = text[:max_chars]

    return ExtractedContent(
        title=title,
        text=text,
        selector=selector,
        raw_length=len(raw_html),
    )
