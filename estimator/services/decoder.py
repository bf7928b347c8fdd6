"""
Streaming estimate decoder.

Turns the SSE stream produced by the estimate endpoint into typed events.
Individual malformed frames are dropped; only a failure of the line source
itself ends the stream early.
"""

import logging
from typing import AsyncIterable, AsyncIterator, Callable, Dict, Iterable, Iterator, Optional

import orjson
from pydantic import ValidationError

from estimator.models.estimate import EstimatePayload
from estimator.models.events import (
    DecodedEvent,
    DeltaEvent,
    ErrorEvent,
    ResultEvent,
    StatusEvent,
)
from estimator.utils.sse import SSEFrameReader

logger = logging.getLogger(__name__)


def _load_object(payload: str) -> Optional[dict]:
    try:
        data = orjson.loads(payload)
    except orjson.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _decode_status(data: dict) -> Optional[DecodedEvent]:
    stage = data.get("stage")
    if isinstance(stage, str):
        return StatusEvent(stage=stage)
    return None


def _decode_delta(data: dict) -> Optional[DecodedEvent]:
    text = data.get("delta")
    if isinstance(text, str) and text:
        return DeltaEvent(text=text)
    return None


def _decode_result(data: dict) -> Optional[DecodedEvent]:
    try:
        payload = EstimatePayload.model_validate(data)
    except ValidationError:
        return None
    estimate = payload.to_estimate()
    if estimate is None:
        return None
    return ResultEvent(estimate=estimate)


def _decode_error(data: dict) -> Optional[DecodedEvent]:
    message = data.get("error")
    if isinstance(message, str):
        return ErrorEvent(message=message)
    return None


EVENT_DECODERS: Dict[str, Callable[[dict], Optional[DecodedEvent]]] = {
    "status": _decode_status,
    "delta": _decode_delta,
    "result": _decode_result,
    "error": _decode_error,
}


def map_event(event_name: str, payload: str) -> Optional[DecodedEvent]:
    """Map one complete SSE record to a typed event, or None to drop it."""
    decoder = EVENT_DECODERS.get(event_name)
    if decoder is None:
        return None

    data = _load_object(payload)
    event = decoder(data) if data is not None else None
    if event is None:
        logger.debug(f"Dropping malformed '{event_name}' frame: {payload[:120]!r}")
    return event


def decode(lines: Iterable[str]) -> Iterator[DecodedEvent]:
    """Lazily decode SSE lines into events, in wire order."""
    reader = SSEFrameReader()
    for line in lines:
        frame = reader.feed(line)
        if frame is not None:
            event = map_event(*frame)
            if event is not None:
                yield event

    frame = reader.flush()
    if frame is not None:
        event = map_event(*frame)
        if event is not None:
            yield event


async def decode_stream(lines: AsyncIterable[str]) -> AsyncIterator[DecodedEvent]:
    """
    Async variant of `decode` for a streaming HTTP body.

    Pulls one line per step, so nothing beyond the current frame is read
    ahead of the consumer. If the consumer stops early (aclose or
    cancellation), the line source is closed as well.
    """
    reader = SSEFrameReader()
    iterator = lines.__aiter__()
    try:
        async for line in iterator:
            frame = reader.feed(line)
            if frame is not None:
                event = map_event(*frame)
                if event is not None:
                    yield event

        frame = reader.flush()
        if frame is not None:
            event = map_event(*frame)
            if event is not None:
                yield event
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()
