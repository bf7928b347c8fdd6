"""
HTTP client for the ai-estimate endpoint.

Streaming is the normal path; `analyze` is the single-document fallback used
when a stream ends without a terminal event.
"""

import logging
from contextlib import aclosing
from typing import AsyncIterator, List, Optional

import httpx
import orjson
from pydantic import ValidationError

from estimator.client.errors import (
    EmptyInputError,
    InvalidResponseError,
    NetworkError,
    RemoteError,
    StreamInterruptedError,
    UnauthorizedError,
)
from estimator.config import settings
from estimator.models.estimate import EstimatePayload, MacroEstimate
from estimator.models.events import DecodedEvent
from estimator.models.request import EstimateRequest, ItemInput
from estimator.services.decoder import decode_stream

logger = logging.getLogger(__name__)

ESTIMATE_PATH = "/functions/v1/ai-estimate"


def build_request(
    text: Optional[str],
    items: Optional[List[ItemInput]],
    image_path: Optional[str],
    input_type: str,
    stream: Optional[bool] = None,
) -> EstimateRequest:
    """Validate caller input and build the request body."""
    trimmed = (text or "").strip()
    if not trimmed and image_path is None and not items:
        raise EmptyInputError()

    return EstimateRequest(
        text=trimmed or None,
        items=items or None,
        image_path=image_path,
        input_type=input_type,
        stream=stream,
    )


class AnalysisClient:
    """Calls the estimate endpoint with the caller's access token."""

    def __init__(
        self,
        base_url: str,
        access_token: str,
        anon_key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.anon_key = anon_key
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or float(settings.provider_timeout),
        )

    async def __aenter__(self) -> "AnalysisClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Cleanup HTTP client resources."""
        await self._client.aclose()

    def _headers(self, streaming: bool) -> dict:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.access_token}",
        }
        if self.anon_key:
            headers["apikey"] = self.anon_key
        if streaming:
            headers["Accept"] = "text/event-stream"
        return headers

    async def analyze_stream(self, request: EstimateRequest) -> AsyncIterator[DecodedEvent]:
        """
        Stream decoded events for one estimate.

        Raises UnauthorizedError / RemoteError before the first event if the
        server rejects the request, and StreamInterruptedError if the
        connection drops mid-stream.
        """
        body = request.model_copy(update={"stream": True}).to_wire()
        try:
            async with self._client.stream(
                "POST", ESTIMATE_PATH, content=orjson.dumps(body), headers=self._headers(True)
            ) as response:
                if response.status_code == 401:
                    raise UnauthorizedError()
                if not response.is_success:
                    raise RemoteError(
                        f"Edge Function returned a non-2xx status code: {response.status_code}"
                    )

                try:
                    async with aclosing(decode_stream(response.aiter_lines())) as events:
                        async for event in events:
                            yield event
                except httpx.TransportError as e:
                    logger.warning(f"Estimate stream interrupted: {e}")
                    raise StreamInterruptedError(str(e)) from e
        except httpx.TransportError as e:
            raise NetworkError(str(e)) from e

    async def analyze(self, request: EstimateRequest) -> MacroEstimate:
        """Request a complete estimate as a single JSON document."""
        body = request.model_copy(update={"stream": None}).to_wire()
        try:
            response = await self._client.post(
                ESTIMATE_PATH, content=orjson.dumps(body), headers=self._headers(False)
            )
        except httpx.TransportError as e:
            raise NetworkError(str(e)) from e

        if not response.content:
            raise InvalidResponseError()

        logger.debug(f"Estimate status: {response.status_code}, body: {response.text[:500]}")

        try:
            payload = EstimatePayload.model_validate(orjson.loads(response.content))
        except (orjson.JSONDecodeError, ValidationError):
            payload = None

        if not response.is_success:
            if payload is not None and payload.error:
                raise RemoteError(payload.error)
            if response.status_code == 401:
                raise UnauthorizedError(response.text or None)
            if response.text:
                raise RemoteError(
                    f"Edge Function returned {response.status_code}: {response.text}"
                )
            raise RemoteError(
                f"Edge Function returned a non-2xx status code: {response.status_code}"
            )

        if payload is None:
            raise InvalidResponseError()
        if payload.error:
            raise RemoteError(payload.error)

        estimate = payload.to_estimate()
        if estimate is None:
            raise InvalidResponseError()
        return estimate
