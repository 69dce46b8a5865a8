from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class EventType(StrEnum):
    ACTIVITY = "activity"
    ANALYSIS = "analysis"
    COMPLETE = "complete"
    ERROR = "error"


TERMINAL_EVENTS = frozenset({EventType.COMPLETE, EventType.ERROR})


@dataclass(slots=True)
class SSEEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.event in TERMINAL_EVENTS

    def payload(self) -> str:
        return json.dumps({"type": self.event.value, "data": self.data})

    def format(self) -> str:
        return f"data: {self.payload()}\n\n"
