"""
OpenAI Responses API provider with vision input and JSON output.
"""

import logging
from typing import Any, AsyncIterator, Optional

import httpx
import orjson

from estimator.providers.base import BaseProvider, EstimatePrompt, ProviderError, StreamChunk

logger = logging.getLogger(__name__)

OUTPUT_TEXT_DELTA = "response.output_text.delta"
RESPONSE_COMPLETED = "response.completed"


def extract_output_text(data: Any) -> str:
    """Concatenate output_text parts of a Responses API result."""
    if isinstance(data, dict) and isinstance(data.get("output_text"), str):
        return data["output_text"]

    output = data.get("output") if isinstance(data, dict) else None
    if not isinstance(output, list):
        return ""

    texts = []
    for item in output:
        if not isinstance(item, dict) or not isinstance(item.get("content"), list):
            continue
        for part in item["content"]:
            if isinstance(part, dict) and part.get("type") == "output_text":
                if isinstance(part.get("text"), str):
                    texts.append(part["text"])
    return "".join(texts)


def extract_refusal(data: Any) -> Optional[str]:
    """Return the model's refusal message, if it refused."""
    output = data.get("output") if isinstance(data, dict) else None
    if not isinstance(output, list):
        return None

    for item in output:
        if not isinstance(item, dict) or not isinstance(item.get("content"), list):
            continue
        for part in item["content"]:
            if isinstance(part, dict) and part.get("type") == "refusal":
                refusal = part.get("refusal")
                if isinstance(refusal, str) and refusal.strip():
                    return refusal
                return "OpenAI refused to answer."
    return None


class OpenAIProvider(BaseProvider):
    """OpenAI provider using the Responses API."""

    name = "openai"

    def __init__(self, api_key: str, model: str, base_url: str = "https://api.openai.com/v1"):
        super().__init__(api_key, model)
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
        )

    def _build_payload(self, request: EstimatePrompt, stream: bool) -> dict:
        content = [{"type": "input_text", "text": request.prompt}]
        if request.image_url:
            content.append({"type": "input_image", "image_url": request.image_url})

        payload = {
            "model": self.model,
            "temperature": request.temperature,
            "text": {"format": {"type": "json_object"}},
            "instructions": request.instructions,
            "input": [{"role": "user", "content": content}],
        }
        if stream:
            payload["stream"] = True
        return payload

    def _extract_content(self, data: dict) -> str | None:
        """Extract text content from Responses API SSE data."""
        if data.get("type") == OUTPUT_TEXT_DELTA:
            return data.get("delta")
        return None

    def _is_done(self, data: dict) -> bool:
        return data.get("type") == RESPONSE_COMPLETED

    async def stream_text(self, request: EstimatePrompt) -> AsyncIterator[StreamChunk]:
        """Stream model output text deltas."""
        try:
            async with self._client.stream(
                "POST", "/responses", content=orjson.dumps(self._build_payload(request, True))
            ) as response:
                if not response.is_success:
                    error_text = (await response.aread()).decode(errors="replace")
                    raise ProviderError(
                        f"OpenAI request failed with status {response.status_code}: "
                        f"{error_text or 'unknown error'}."
                    )
                async for chunk in self._stream_sse_lines(
                    response, self._extract_content, self._is_done
                ):
                    yield chunk

        except Exception as e:
            logger.warning(f"{self.name} stream failed: {e}")
            yield self._error_chunk(e)

    async def complete(self, request: EstimatePrompt) -> str:
        """Run a non-streaming request and return the output text."""
        try:
            response = await self._client.post(
                "/responses", content=orjson.dumps(self._build_payload(request, False))
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"OpenAI request failed: {e}") from e

        if not response.is_success:
            raise ProviderError(
                f"OpenAI request failed with status {response.status_code}: "
                f"{response.text or 'unknown error'}."
            )

        try:
            data = orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise ProviderError("Invalid OpenAI response.") from e

        status = data.get("status") if isinstance(data, dict) else None
        if status and status != "completed":
            raise ProviderError(f"OpenAI response status: {status}")

        refusal = extract_refusal(data)
        if refusal:
            raise ProviderError(refusal)

        return extract_output_text(data)
