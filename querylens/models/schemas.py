from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from querylens.models.research import DEFAULT_RELEVANCE_THRESHOLD, ResearchQuery


# --- Requests ---


class ResearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Optional at the schema level so a missing query maps to a 400, not a 422.
    query: str | None = None
    relevance_threshold: int = Field(
        default=DEFAULT_RELEVANCE_THRESHOLD, alias="relevanceThreshold"
    )
    enable_formatting: bool = Field(default=True, alias="enableFormatting")

    def to_query(self) -> ResearchQuery:
        return ResearchQuery(
            text=self.query or "",
            relevance_threshold=self.relevance_threshold,
            enable_formatting=self.enable_formatting,
        )


class FollowupRequest(BaseModel):
    question: str | None = None
    context: str | None = None


# --- Responses ---


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None


class HealthResponse(BaseModel):
    status: str
    service: str
