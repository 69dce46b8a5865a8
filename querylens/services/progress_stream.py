from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import AsyncGenerator, AsyncIterator

from loguru import logger

from querylens.config import settings
from querylens.models.events import SSEEvent
from querylens.services import logger as log_service
from querylens.services import streaming

TIMEOUT_MESSAGE = "Research process timed out"
FAILURE_MESSAGE = "Research failed"


class StreamState(StrEnum):
    OPEN = "open"
    EMITTING = "emitting"
    CLOSED = "closed"


class ProgressStream:
    """Relays pipeline events to a client and guarantees a single terminal frame.

    Each pull from the pipeline is bounded by `liveness_timeout`, so the
    watchdog restarts with every event. When it fires, the in-flight stage is
    cancelled and one `error` frame is emitted. Pipeline failures are also
    reported as one `error` frame. Nothing is emitted after close.
    """

    def __init__(
        self,
        events: AsyncIterator[SSEEvent],
        *,
        liveness_timeout: float | None = None,
        failure_message: str = FAILURE_MESSAGE,
    ):
        self._events = events
        self.liveness_timeout = (
            liveness_timeout
            if liveness_timeout is not None
            else settings.stream_liveness_timeout_seconds
        )
        self.failure_message = failure_message
        self.state = StreamState.OPEN

    @property
    def closed(self) -> bool:
        return self.state == StreamState.CLOSED

    def emit(self, event: SSEEvent) -> SSEEvent | None:
        """Admit an event for delivery, or drop it if the stream is closed."""
        if self.closed:
            logger.warning(f"Dropping {event.event.value} event on closed stream")
            return None
        self.state = StreamState.CLOSED if event.is_terminal else StreamState.EMITTING
        return event

    def close(self) -> None:
        self.state = StreamState.CLOSED

    async def _aclose_source(self) -> None:
        aclose = getattr(self._events, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except RuntimeError as e:
            logger.warning(f"Could not close event source: {e}")

    async def frames(self) -> AsyncGenerator[SSEEvent, None]:
        iterator = self._events.__aiter__()
        try:
            while not self.closed:
                try:
                    event = await asyncio.wait_for(
                        iterator.__anext__(), timeout=self.liveness_timeout
                    )
                except StopAsyncIteration:
                    break
                except asyncio.TimeoutError:
                    log_service.log_event(
                        event_type="stream_timeout",
                        message=f"No pipeline activity for {self.liveness_timeout:g}s",
                    )
                    frame = self.emit(
                        streaming.error(
                            TIMEOUT_MESSAGE,
                            f"No activity for {self.liveness_timeout:g} seconds",
                        )
                    )
                    if frame is not None:
                        yield frame
                    break
                except Exception as e:
                    log_service.log_event(
                        event_type="stream_error",
                        message=self.failure_message,
                        error=str(e),
                    )
                    frame = self.emit(streaming.error(self.failure_message, str(e)))
                    if frame is not None:
                        yield frame
                    break

                frame = self.emit(event)
                if frame is not None:
                    yield frame
        finally:
            self.close()
            await self._aclose_source()
