"""
Macro estimation orchestrator.

Streaming runs emit, in order:
- status {stage: "requesting_model"}
- delta {delta} for every model output fragment
- status {stage: "finalizing"}
- exactly one of result {...normalized estimate} or error {error}
"""

import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

from estimator.models.request import EstimateRequest, ItemInput
from estimator.providers.base import BaseProvider, EstimatePrompt, ProviderError
from estimator.providers.registry import provider_registry
from estimator.services.prompts import (
    ESTIMATE_INSTRUCTIONS,
    build_prompt,
    extract_weight,
    temperature_for,
)
from estimator.utils.normalize import NormalizationError, normalize_result, repair_llm_json
from estimator.utils.sse import format_sse

logger = logging.getLogger(__name__)


class EstimateRequestError(ValueError):
    """The request body is unusable; the message is returned to the client."""


@dataclass
class PreparedRequest:
    """A validated request, ready to be turned into a prompt"""

    text: str
    image_path: str
    input_type: str
    items: List[ItemInput] = field(default_factory=list)


def prepare_request(request: EstimateRequest) -> PreparedRequest:
    """Trim and validate an incoming request."""
    text = (request.text or "").strip()
    image_path = (request.image_path or "").strip()

    items = []
    for item in request.items or []:
        name = item.name.strip()
        if not name or not item.grams > 0:
            raise EstimateRequestError("Invalid items payload.")
        items.append(ItemInput(name=name, grams=item.grams))

    if not text and not image_path and not items:
        raise EstimateRequestError("Missing required field: text, items, or imagePath")

    return PreparedRequest(
        text=text, image_path=image_path, input_type=request.input_type or "text", items=items
    )


class EstimationService:
    """Runs one estimate against a provider."""

    def __init__(self, provider: BaseProvider):
        self.provider = provider

    def build_prompt(self, prepared: PreparedRequest, image_url: Optional[str] = None) -> EstimatePrompt:
        # A parsed weight only matters when the model has to identify foods itself
        weight = None
        if not prepared.items and prepared.text:
            weight = extract_weight(prepared.text)

        return EstimatePrompt(
            instructions=ESTIMATE_INSTRUCTIONS,
            prompt=build_prompt(
                prepared.text, prepared.items, weight, prepared.input_type, prepared.image_path
            ),
            temperature=temperature_for(prepared.input_type),
            image_url=image_url,
        )

    def _finalize(self, output_text: str, require_items: bool) -> Dict[str, Any]:
        result = repair_llm_json(output_text, provider=self.provider.name)
        if result is None:
            raise NormalizationError("OpenAI returned invalid JSON.")
        return normalize_result(result, require_items=require_items)

    async def estimate(self, prepared: PreparedRequest, image_url: Optional[str] = None) -> Dict[str, Any]:
        """
        Non-streaming estimate.

        Raises:
            ProviderError: the provider call failed
            NormalizationError: the model output was unusable
        """
        prompt = self.build_prompt(prepared, image_url)
        output_text = await self.provider.complete(prompt)
        return self._finalize(output_text, require_items=bool(prepared.items))

    async def stream_estimate(
        self, prepared: PreparedRequest, image_url: Optional[str] = None
    ) -> AsyncIterator[str]:
        """Run the estimate and yield SSE-formatted events."""
        provider_registry.stream_started()
        try:
            yield format_sse("status", {"stage": "requesting_model"})

            prompt = self.build_prompt(prepared, image_url)
            output: List[str] = []
            async for chunk in self.provider.stream_text(prompt):
                if chunk.error:
                    yield format_sse("error", {"error": chunk.error})
                    return
                if chunk.content:
                    output.append(chunk.content)
                    yield format_sse("delta", {"delta": chunk.content})
                if chunk.is_done:
                    break

            yield format_sse("status", {"stage": "finalizing"})

            try:
                normalized = self._finalize("".join(output), require_items=bool(prepared.items))
            except NormalizationError as e:
                logger.info(f"Rejected model output: {e}")
                yield format_sse("error", {"error": str(e)})
                return

            yield format_sse("result", normalized)

        except ProviderError as e:
            yield format_sse("error", {"error": str(e)})
        except Exception as e:
            logger.exception("Estimate stream failed")
            yield format_sse("error", {"error": str(e) or "Unknown error."})
        finally:
            provider_registry.stream_ended()
