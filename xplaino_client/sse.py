from __future__ import annotations

import json
from typing import Any, AsyncIterator, Mapping, Sequence

import httpx

DONE_SENTINEL = "[DONE]"


async def iter_sse_events(response: httpx.Response) -> AsyncIterator[dict[str, Any]]:
    """Yield one dict per ``data:`` event of a ``text/event-stream`` body.

    Multi-line events are joined with newlines. Other SSE fields and the
    ``[DONE]`` terminator are skipped.
    """
    data_lines: list[str] = []

    async for raw_line in response.aiter_lines():
        line = (raw_line or "").strip()

        if not line:
            event = _flush(data_lines)
            if event is not None:
                yield event
            continue

        if line.startswith("data:"):
            data_lines.append(line[5:].strip())

    event = _flush(data_lines)
    if event is not None:
        yield event


def parse_sse_event(event_payload: str) -> dict[str, Any]:
    try:
        parsed = json.loads(event_payload)
    except ValueError:
        return {"raw": event_payload}
    if isinstance(parsed, dict):
        return parsed
    return {"value": parsed}


def _flush(data_lines: list[str]) -> dict[str, Any] | None:
    event_payload = "\n".join(data_lines).strip()
    data_lines.clear()
    if not event_payload or event_payload == DONE_SENTINEL:
        return None
    return parse_sse_event(event_payload)


def completion_event(events: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    """Return the last ``{"type": "complete"}`` event, or ``{}`` when the stream sent none."""
    for event in reversed(events):
        if event.get("type") == "complete":
            return dict(event)
    return {}
