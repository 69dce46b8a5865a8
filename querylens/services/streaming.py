from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from querylens.models.events import EventType, SSEEvent
from querylens.models.research import QueryAnalysis


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def activity(message: str) -> SSEEvent:
    return SSEEvent(
        event=EventType.ACTIVITY,
        data={"message": message, "timestamp": timestamp()},
    )


def analysis(query_analysis: QueryAnalysis) -> SSEEvent:
    """Emit the sub-question breakdown produced by the query analyzer."""
    return SSEEvent(event=EventType.ANALYSIS, data=query_analysis.to_dict())


def complete(payload: dict[str, Any]) -> SSEEvent:
    return SSEEvent(event=EventType.COMPLETE, data=payload)


def error(message: str, detail: str) -> SSEEvent:
    return SSEEvent(
        event=EventType.ERROR,
        data={"message": message, "error": detail},
    )
