"""
Server-Sent Events helpers

Framing for the run event stream and a callback sink that feeds it.
"""

import asyncio
import json
from typing import Any, Optional

from eval_engine.core.exceptions import describe_error
from eval_engine.models import RunProgress, TestCaseExecutionResult
from eval_engine.services.streaming_executor import RunCallbacks

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse_event(event: str, data: Any) -> str:
    """Frame one event as ``event: <name>`` plus a JSON ``data`` line."""
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


class QueueCallbacks(RunCallbacks):
    """Pushes framed run events onto a queue drained by the HTTP response."""

    def __init__(self, queue: "asyncio.Queue[Optional[str]]") -> None:
        self.queue = queue

    async def on_progress(self, progress: RunProgress) -> None:
        await self.queue.put(format_sse_event("progress", progress.to_payload()))

    async def on_result(self, result: TestCaseExecutionResult) -> None:
        await self.queue.put(format_sse_event("result", result.to_payload()))

    async def on_error(self, error: Exception, test_case_id: Optional[str] = None) -> None:
        payload = {"message": describe_error(error)}
        if test_case_id:
            payload["testCaseId"] = test_case_id
        await self.queue.put(format_sse_event("error", payload))


__all__ = ["QueueCallbacks", "SSE_HEADERS", "format_sse_event"]
