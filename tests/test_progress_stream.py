from __future__ import annotations

import asyncio

import pytest

from querylens.models.events import EventType
from querylens.services import streaming
from querylens.services.progress_stream import ProgressStream, StreamState


async def _collect(stream: ProgressStream):
    return [frame async for frame in stream.frames()]


@pytest.mark.asyncio
async def test_complete_closes_stream():
    async def pipeline():
        yield streaming.activity("working")
        yield streaming.complete({"answer": 42})

    stream = ProgressStream(pipeline(), liveness_timeout=1.0)
    frames = await _collect(stream)

    assert [f.event for f in frames] == [EventType.ACTIVITY, EventType.COMPLETE]
    assert stream.state == StreamState.CLOSED


@pytest.mark.asyncio
async def test_stall_emits_single_timeout_error_and_cancels_stage():
    cancelled = asyncio.Event()

    async def pipeline():
        yield streaming.activity("Analyzing your query...")
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        yield streaming.complete({})

    stream = ProgressStream(pipeline(), liveness_timeout=0.05)
    frames = await _collect(stream)

    assert [f.event for f in frames] == [EventType.ACTIVITY, EventType.ERROR]
    assert frames[-1].data == {
        "message": "Research process timed out",
        "error": "No activity for 0.05 seconds",
    }
    assert cancelled.is_set()


@pytest.mark.asyncio
async def test_watchdog_restarts_on_every_event():
    async def pipeline():
        for i in range(4):
            await asyncio.sleep(0.03)
            yield streaming.activity(f"step {i}")
        yield streaming.complete({"ok": True})

    # Total runtime exceeds the timeout, but no single gap does.
    frames = await _collect(ProgressStream(pipeline(), liveness_timeout=0.1))

    assert frames[-1].event == EventType.COMPLETE
    assert len(frames) == 5


@pytest.mark.asyncio
async def test_failure_emits_error_with_exception_message():
    async def pipeline():
        yield streaming.activity("Analyzing your query...")
        raise RuntimeError("invalid x-api-key")

    frames = await _collect(ProgressStream(pipeline(), liveness_timeout=1.0))

    assert frames[0].event == EventType.ACTIVITY
    assert frames[-1].event == EventType.ERROR
    assert frames[-1].data == {"message": "Research failed", "error": "invalid x-api-key"}
    assert sum(1 for f in frames if f.is_terminal) == 1


@pytest.mark.asyncio
async def test_custom_failure_message():
    async def pipeline():
        raise ValueError("boom")
        yield  # pragma: no cover

    frames = await _collect(
        ProgressStream(pipeline(), liveness_timeout=1.0, failure_message="Follow-up processing failed")
    )

    assert frames[0].data["message"] == "Follow-up processing failed"


@pytest.mark.asyncio
async def test_nothing_emitted_after_terminal_event():
    async def pipeline():
        yield streaming.complete({})
        yield streaming.activity("late")

    stream = ProgressStream(pipeline(), liveness_timeout=1.0)
    frames = await _collect(stream)

    assert [f.event for f in frames] == [EventType.COMPLETE]
    assert stream.emit(streaming.activity("after close")) is None


def test_frame_wire_format():
    frame = streaming.error("Research failed", "boom").format()
    assert frame == 'data: {"type": "error", "data": {"message": "Research failed", "error": "boom"}}\n\n'
