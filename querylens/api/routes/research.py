from __future__ import annotations

from typing import AsyncIterator

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from loguru import logger
from sse_starlette.sse import EventSourceResponse

from querylens.agents.followup_agent import FollowupAgent
from querylens.agents.orchestrator import ResearchOrchestrator
from querylens.models.schemas import ErrorResponse, FollowupRequest, ResearchRequest
from querylens.services import logger as log_service
from querylens.services.progress_stream import ProgressStream

router = APIRouter(prefix="/api/research", tags=["research"])

FOLLOWUP_FAILURE_MESSAGE = "Follow-up processing failed"


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content=ErrorResponse(error=message).model_dump(exclude_none=True))


def _server_error(exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="Internal server error", details=str(exc)).model_dump(),
    )


def _event_stream(stream: ProgressStream) -> EventSourceResponse:
    async def event_generator() -> AsyncIterator[dict]:
        async for event in stream.frames():
            yield {"data": event.payload()}

    return EventSourceResponse(event_generator(), sep="\n")


@router.post("")
async def research(request: ResearchRequest, stream: bool = Query(False)):
    """Run the research pipeline. With `?stream=true` progress is sent as SSE."""
    if not request.query or not request.query.strip():
        return _bad_request("Query is required")

    query = request.to_query()
    orchestrator = ResearchOrchestrator()

    if stream:
        return _event_stream(ProgressStream(orchestrator.research(query)))

    try:
        return await orchestrator.run(query)
    except Exception as e:
        log_service.log_event(
            event_type="research_error",
            message="Research request failed",
            error=str(e),
        )
        logger.exception("Research request failed")
        return _server_error(e)


@router.post("/followup")
async def followup(request: FollowupRequest, stream: bool = Query(False)):
    """Answer a follow-up question against previously returned research context."""
    if not request.question or not request.context:
        return _bad_request("Question and context are required")

    agent = FollowupAgent()
    if stream:
        events = agent.run(request.question, request.context)
        return _event_stream(ProgressStream(events, failure_message=FOLLOWUP_FAILURE_MESSAGE))

    try:
        return await agent.answer(request.question, request.context)
    except Exception as e:
        log_service.log_event(
            event_type="followup_error",
            message="Follow-up request failed",
            error=str(e),
        )
        logger.exception("Follow-up request failed")
        return _server_error(e)
