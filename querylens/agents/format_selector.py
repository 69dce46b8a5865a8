from __future__ import annotations

import re

from querylens.agents.base import BaseAgent
from querylens.models.research import FilteredFinding, FormatMetadata, ResponseFormat

SAMPLE_FINDINGS = 2
SAMPLE_ANSWER_CHARS = 200

_FORMAT_RE = re.compile(r"Format:\s*(table|bullets|mixed|narrative)", re.IGNORECASE)
_COMPARISONS_RE = re.compile(r"HasComparisons:\s*(true|false)", re.IGNORECASE)
_LISTS_RE = re.compile(r"HasLists:\s*(true|false)", re.IGNORECASE)
_DATA_RE = re.compile(r"HasData:\s*(true|false)", re.IGNORECASE)


def _flag(pattern: re.Pattern[str], text: str, default: bool) -> bool:
    match = pattern.search(text)
    if not match:
        return default
    return match.group(1).lower() == "true"


def parse_format(text: str) -> FormatMetadata:
    """Decode the four `Key: value` lines independently; unparsable lines fall back to defaults."""
    text = text or ""
    defaults = FormatMetadata.default()
    format_match = _FORMAT_RE.search(text)
    return FormatMetadata(
        format=ResponseFormat(format_match.group(1).lower()) if format_match else defaults.format,
        has_comparisons=_flag(_COMPARISONS_RE, text, defaults.has_comparisons),
        has_lists=_flag(_LISTS_RE, text, defaults.has_lists),
        has_data=_flag(_DATA_RE, text, defaults.has_data),
    )


class FormatSelector(BaseAgent):
    name = "format_selector"
    max_tokens = 200
    temperature = 0.1

    def build_sample(self, findings: list[FilteredFinding]) -> str:
        return "\n\n".join(
            self.prompt(
                "sample_finding",
                question=f.question,
                answer=f.answer[:SAMPLE_ANSWER_CHARS],
            )
            for f in findings[:SAMPLE_FINDINGS]
        )

    async def detect(
        self, relevant_findings: list[FilteredFinding], original_query: str
    ) -> FormatMetadata:
        response = await self.generate(
            self.prompt(
                "detect",
                original_query=original_query,
                finding_count=len(relevant_findings),
                sample_findings=self.build_sample(relevant_findings),
            )
        )
        return parse_format(response)
