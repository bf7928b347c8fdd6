import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Optional

import httpx
import orjson

from estimator.config import settings

logger = logging.getLogger(__name__)

# Constants
SSE_DATA_PREFIX = "data: "
SSE_DONE_SIGNAL = "data: [DONE]"


@dataclass
class StreamChunk:
    """Represents a single streaming chunk from a provider"""

    provider: str
    content: str
    is_done: bool = False
    error: Optional[str] = None


@dataclass
class EstimatePrompt:
    """Everything a provider needs to run one estimate"""

    instructions: str
    prompt: str
    temperature: float
    image_url: Optional[str] = None


class ProviderError(Exception):
    """A provider call failed; the message is safe to return to clients."""


class BaseProvider(ABC):
    """Abstract base class for model providers"""

    name: str

    def __init__(self, api_key: str, model: str):
        self.api_key = api_key
        self.model = model
        self._client = None

    @property
    def timeout(self) -> float:
        """Get the configured provider timeout in seconds."""
        return float(settings.provider_timeout)

    @abstractmethod
    async def stream_text(self, request: EstimatePrompt) -> AsyncIterator[StreamChunk]:
        """Stream raw model output text"""
        pass

    @abstractmethod
    async def complete(self, request: EstimatePrompt) -> str:
        """Return the full model output text in one call"""
        pass

    async def cleanup(self):
        """Cleanup HTTP client resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _error_chunk(self, error: Exception) -> StreamChunk:
        """Create an error StreamChunk."""
        return StreamChunk(provider=self.name, content="", is_done=True, error=str(error))

    def _log_json_error(self, error: Exception) -> None:
        """Log JSON parse error at debug level."""
        logger.debug(f"JSON parse error in {self.name}: {error}")

    async def _stream_sse_lines(
        self,
        response: httpx.Response,
        extract_content: Callable[[dict], str | None],
        done_check: Callable[[dict], bool] | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Process SSE lines from a streaming response.

        Args:
            response: The httpx streaming response
            extract_content: Function to extract text content from parsed JSON data
            done_check: Optional function to check if stream is done from data

        Yields:
            StreamChunk objects with content or completion status
        """
        async for line in response.aiter_lines():
            if not line.startswith(SSE_DATA_PREFIX):
                continue
            if line == SSE_DONE_SIGNAL:
                yield StreamChunk(provider=self.name, content="", is_done=True)
                return

            try:
                data = orjson.loads(line[len(SSE_DATA_PREFIX):])

                if done_check and done_check(data):
                    yield StreamChunk(provider=self.name, content="", is_done=True)
                    return

                content = extract_content(data)
                if content:
                    yield StreamChunk(provider=self.name, content=content)

            except orjson.JSONDecodeError as e:
                self._log_json_error(e)
                continue

        # Upstream closed without an explicit completion event
        yield StreamChunk(provider=self.name, content="", is_done=True)
